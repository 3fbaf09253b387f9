"""
tokens.py - Fungible token wrappers used by the step definitions

Keys for admin/supply/freeze roles are passed as PrivateKeys: the public half
goes into the token definition and the private half signs where the network
requires it. Every helper raises ReceiptStatusError on a non-SUCCESS receipt,
so steps expecting a failure use pytest.raises and inspect .status.
"""

from __future__ import annotations
import logging
from typing import Iterable, Optional, Tuple

from .accounts import Account
from .core import LedgerClient, Receipt, TokenInfo
from .keys import PrivateKey
from .transactions import (
    TokenBurn, TokenCreate, TokenFreeze, TokenMint, TokenUnfreeze,
    TransferIntent, TransferTransaction,
)

logger = logging.getLogger(__name__)


def create_token(
    client: LedgerClient,
    treasury: Account,
    name: str,
    symbol: str,
    decimals: int = 0,
    initial_supply: int = 0,
    admin_key: Optional[PrivateKey] = None,
    supply_key: Optional[PrivateKey] = None,
    freeze_key: Optional[PrivateKey] = None,
    max_supply: Optional[int] = None,
) -> str:
    """
    Create a fungible token and return its id.

    Signed by the treasury and, when present, the admin key. Leaving out the
    supply key produces a fixed-supply token.
    """
    tx = TokenCreate(
        name=name,
        symbol=symbol,
        decimals=decimals,
        initial_supply=initial_supply,
        treasury_account_id=treasury.account_id,
        admin_key=admin_key.public_key if admin_key else None,
        supply_key=supply_key.public_key if supply_key else None,
        freeze_key=freeze_key.public_key if freeze_key else None,
        max_supply=max_supply,
    ).sign(treasury.private_key)
    if admin_key is not None:
        tx = tx.sign(admin_key)

    receipt = client.execute(tx).raise_for_status()
    logger.info("Created token %s (%s) with supply %d", receipt.token_id, symbol, initial_supply)
    return receipt.token_id


def token_info(client: LedgerClient, token_id: str) -> TokenInfo:
    return client.get_token_info(token_id)


def mint(client: LedgerClient, token_id: str, amount: int, supply_key: Optional[PrivateKey] = None) -> Receipt:
    """Mint into the treasury. Without supply_key only the operator signs."""
    tx = TokenMint(token_id=token_id, amount=amount)
    if supply_key is not None:
        tx = tx.sign(supply_key)
    return client.execute(tx).raise_for_status()


def burn(client: LedgerClient, token_id: str, amount: int, supply_key: Optional[PrivateKey] = None) -> Receipt:
    """Burn from the treasury. Without supply_key only the operator signs."""
    tx = TokenBurn(token_id=token_id, amount=amount)
    if supply_key is not None:
        tx = tx.sign(supply_key)
    return client.execute(tx).raise_for_status()


def freeze(client: LedgerClient, token_id: str, account_id: str, freeze_key: PrivateKey) -> Receipt:
    tx = TokenFreeze(token_id=token_id, account_id=account_id).sign(freeze_key)
    return client.execute(tx).raise_for_status()


def unfreeze(client: LedgerClient, token_id: str, account_id: str, freeze_key: PrivateKey) -> Receipt:
    tx = TokenUnfreeze(token_id=token_id, account_id=account_id).sign(freeze_key)
    return client.execute(tx).raise_for_status()


def token_transfer(token_id: str, legs: Iterable[Tuple[str, int]], memo: str = "") -> TransferTransaction:
    """
    Freeze a single-token transfer from (account_id, amount) legs.

    Raises:
        ConservationViolation: If the legs do not sum to zero
    """
    intent = TransferIntent(memo=memo)
    for account_id, amount in legs:
        intent.add_token_transfer(token_id, account_id, amount)
    return intent.freeze()


def transfer_tokens(
    client: LedgerClient,
    token_id: str,
    sender: Account,
    recipient_id: str,
    amount: int,
) -> Receipt:
    """Move amount from sender to recipient_id, signed by the sender."""
    tx = token_transfer(token_id, [(sender.account_id, -amount), (recipient_id, amount)])
    return client.execute(tx.sign(sender.private_key)).raise_for_status()
