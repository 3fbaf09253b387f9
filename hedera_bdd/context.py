"""
context.py - State threaded between the steps of one scenario

Steps never stash values on module globals. Everything a later step needs
(accounts created so far, the token or topic under test, a transaction
waiting to be submitted, the last receipt) lives on a ScenarioContext that
pytest-bdd hands to every step through a fixture.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Optional

from .accounts import Account
from .config import Settings
from .core import LedgerClient, Receipt
from .keys import KeyList
from .topics import MessageCollector
from .transactions import Transaction

ORDINALS = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
}


def ordinal_index(word: str) -> int:
    """Map "first".."fifth" to 1..5."""
    try:
        return ORDINALS[word.strip().lower()]
    except KeyError:
        raise ValueError(f"unknown ordinal {word!r}") from None


@dataclass
class ScenarioContext:
    """
    Scenario-scoped record passed by reference into each step.

    Attributes:
        client: Client whose operator pays for transactions
        settings: Suite configuration
        treasury: Counterparty for every reconciliation (the holding account)
        accounts: Accounts by ordinal position (1 = "first")
        token_id: Token under test
        topic_id: Topic under test
        threshold_key: Key list built by a threshold-key step
        pending: Signed transaction waiting for a submit step
        receipt: Receipt of the last submitted transaction
        collector: Messages received from the topic subscription
        hbar_before: Hbar balances captured before a submission, by account id
    """
    client: LedgerClient
    settings: Settings
    treasury: Optional[Account] = None
    accounts: Dict[int, Account] = field(default_factory=dict)
    token_id: Optional[str] = None
    topic_id: Optional[str] = None
    threshold_key: Optional[KeyList] = None
    pending: Optional[Transaction] = None
    receipt: Optional[Receipt] = None
    collector: Optional[MessageCollector] = None
    hbar_before: Dict[str, Decimal] = field(default_factory=dict)

    def account(self, ordinal: int) -> Account:
        try:
            return self.accounts[ordinal]
        except KeyError:
            raise LookupError(f"account #{ordinal} has not been set up in this scenario") from None

    def set_account(self, ordinal: int, account: Account) -> Account:
        self.accounts[ordinal] = account
        return account

    def require_treasury(self) -> Account:
        if self.treasury is None:
            raise LookupError("no treasury account has been set up in this scenario")
        return self.treasury

    def require_token(self) -> str:
        if self.token_id is None:
            raise LookupError("no token has been created in this scenario")
        return self.token_id

    def require_topic(self) -> str:
        if self.topic_id is None:
            raise LookupError("no topic has been created in this scenario")
        return self.topic_id

    def take_pending(self) -> Transaction:
        """Return the pending transaction and clear it."""
        if self.pending is None:
            raise LookupError("no transaction is waiting to be submitted")
        tx, self.pending = self.pending, None
        return tx

    def close(self) -> None:
        if self.collector is not None:
            self.collector.unsubscribe()
