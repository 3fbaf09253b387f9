"""
accounts.py - Account wrappers used by the step definitions

Each helper is a single network call: build the transaction, sign it with the
keys it needs, execute it through the client and raise on a non-SUCCESS
receipt.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
import logging
from typing import Any, Iterable, List, Optional

from .core import LedgerClient, Receipt
from .keys import PrivateKey
from .transactions import AccountCreate, AccountDelete, TokenAssociate, TransferIntent

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Account:
    """An account id together with the private key that controls it."""
    account_id: str
    private_key: PrivateKey

    def __post_init__(self):
        if not self.account_id or not self.account_id.strip():
            raise ValueError("Account account_id cannot be empty")

    @property
    def public_key(self):
        return self.private_key.public_key


def hbar_balance(client: LedgerClient, account_id: str) -> Decimal:
    return client.get_account_balance(account_id).hbars


def accounts_above_threshold(
    client: LedgerClient,
    roster: Iterable[Account],
    threshold: Any,
) -> List[Account]:
    """Roster accounts whose hbar balance is strictly greater than threshold, in roster order."""
    threshold = threshold if isinstance(threshold, Decimal) else Decimal(str(threshold))
    selected = []
    for account in roster:
        balance = hbar_balance(client, account.account_id)
        logger.debug("Account %s has %s hbar", account.account_id, balance)
        if balance > threshold:
            selected.append(account)
    return selected


def create_account(
    client: LedgerClient,
    initial_hbar: Any = 0,
    private_key: Optional[PrivateKey] = None,
) -> Account:
    """
    Create a new account funded by the client's operator.

    A fresh ED25519 key is generated unless one is supplied.
    """
    private_key = private_key or PrivateKey.generate()
    receipt = client.execute(
        AccountCreate(key=private_key.public_key, initial_balance=Decimal(str(initial_hbar)))
    ).raise_for_status()
    logger.info("Created account %s with %s hbar", receipt.account_id, initial_hbar)
    return Account(receipt.account_id, private_key)


def associate_token(client: LedgerClient, account: Account, *token_ids: str) -> Receipt:
    """Associate account with the given tokens, signed by the account's key."""
    tx = TokenAssociate(account_id=account.account_id, token_ids=token_ids)
    receipt = client.execute(tx.sign(account.private_key)).raise_for_status()
    logger.info("Associated %s with %s", account.account_id, ", ".join(token_ids))
    return receipt


def transfer_hbar(client: LedgerClient, sender: Account, recipient_id: str, hbar: Any) -> Receipt:
    intent = TransferIntent()
    intent.add_hbar_transfer(sender.account_id, -Decimal(str(hbar)))
    intent.add_hbar_transfer(recipient_id, Decimal(str(hbar)))
    tx = intent.freeze().sign(sender.private_key)
    return client.execute(tx).raise_for_status()


def delete_account(client: LedgerClient, account: Account, transfer_account_id: str) -> Receipt:
    """Delete account, sweeping its remaining hbar into transfer_account_id."""
    tx = AccountDelete(account_id=account.account_id, transfer_account_id=transfer_account_id)
    receipt = client.execute(tx.sign(account.private_key)).raise_for_status()
    logger.info("Deleted account %s", account.account_id)
    return receipt
