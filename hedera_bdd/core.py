"""
Core types for the ledger behaviour suite.

This module provides the foundational data structures and protocols shared by
the stand-in network, the reconciler and the step definitions:
1. Protocols: LedgerClient for querying and submitting to a ledger
2. Immutable data structures: AccountBalance, Receipt, TokenInfo, TopicInfo, TopicMessage
3. Status: the closed enumeration of terminal transaction outcomes
4. Exceptions: LedgerError and the status-carrying error taxonomy
5. Hbar helpers: tinybar/hbar conversion

Nothing in this module talks to a network. Clients implement LedgerClient;
everything else only reads the values they return.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import (
    Dict, Optional, Callable, Any, Protocol, Mapping,
    TYPE_CHECKING, runtime_checkable,
)

if TYPE_CHECKING:
    from .keys import Key
    from .transactions import Transaction


# ============================================================================
# CONSTANTS
# ============================================================================

# One hbar is 10^8 tinybars. All on-ledger hbar arithmetic is in tinybars.
TINYBARS_PER_HBAR = 100_000_000

# Account that collects transaction fees on the stand-in network.
FEE_COLLECTION_ACCOUNT = "0.0.98"

# Largest consensus message accepted in a single submit.
MAX_MESSAGE_BYTES = 1024

# Longest token name or symbol accepted by token create.
MAX_TOKEN_NAME_LENGTH = 100


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from token id to integer balance (smallest unit) for one account.
TokenBalances = Dict[str, int]

# Callback invoked with each message delivered by a topic subscription.
MessageHandler = Callable[['TopicMessage'], None]

# Callback invoked with errors raised while delivering a message.
ErrorHandler = Callable[[BaseException], None]


# ============================================================================
# HBAR HELPERS
# ============================================================================

def to_tinybars(hbar: Any) -> int:
    """
    Convert an hbar amount to tinybars.

    Accepts int, Decimal or a numeric string. Fractions below one tinybar
    are rejected rather than rounded.
    """
    amount = hbar if isinstance(hbar, Decimal) else Decimal(str(hbar))
    if amount.is_nan() or amount.is_infinite():
        raise ValueError(f"hbar amount must be finite, got {hbar}")
    tinybars = amount * TINYBARS_PER_HBAR
    if tinybars != tinybars.to_integral_value():
        raise ValueError(f"hbar amount {hbar} is finer than one tinybar")
    return int(tinybars)


def to_hbar(tinybars: int) -> Decimal:
    """Convert tinybars to an hbar Decimal."""
    return Decimal(tinybars) / TINYBARS_PER_HBAR


# ============================================================================
# STATUS
# ============================================================================

class Status(Enum):
    """
    Terminal outcome of a submitted transaction or a rejected query.

    Exactly one value, SUCCESS, denotes success. Every other member is a
    failure, whatever its name suggests.
    """
    SUCCESS = "SUCCESS"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    PAYER_ACCOUNT_NOT_FOUND = "PAYER_ACCOUNT_NOT_FOUND"
    INSUFFICIENT_PAYER_BALANCE = "INSUFFICIENT_PAYER_BALANCE"
    INVALID_ACCOUNT_ID = "INVALID_ACCOUNT_ID"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    INSUFFICIENT_ACCOUNT_BALANCE = "INSUFFICIENT_ACCOUNT_BALANCE"
    INVALID_ACCOUNT_AMOUNTS = "INVALID_ACCOUNT_AMOUNTS"
    INVALID_INITIAL_BALANCE = "INVALID_INITIAL_BALANCE"
    TRANSFER_ACCOUNT_SAME_AS_DELETE_ACCOUNT = "TRANSFER_ACCOUNT_SAME_AS_DELETE_ACCOUNT"
    TRANSACTION_REQUIRES_ZERO_TOKEN_BALANCES = "TRANSACTION_REQUIRES_ZERO_TOKEN_BALANCES"
    ACCOUNT_IS_TREASURY = "ACCOUNT_IS_TREASURY"
    EMPTY_TRANSFER = "EMPTY_TRANSFER"
    INVALID_TOKEN_ID = "INVALID_TOKEN_ID"
    MISSING_TOKEN_NAME = "MISSING_TOKEN_NAME"
    MISSING_TOKEN_SYMBOL = "MISSING_TOKEN_SYMBOL"
    TOKEN_NAME_TOO_LONG = "TOKEN_NAME_TOO_LONG"
    TOKEN_SYMBOL_TOO_LONG = "TOKEN_SYMBOL_TOO_LONG"
    INVALID_TOKEN_DECIMALS = "INVALID_TOKEN_DECIMALS"
    INVALID_TOKEN_INITIAL_SUPPLY = "INVALID_TOKEN_INITIAL_SUPPLY"
    INVALID_TOKEN_MAX_SUPPLY = "INVALID_TOKEN_MAX_SUPPLY"
    INVALID_TREASURY_ACCOUNT_FOR_TOKEN = "INVALID_TREASURY_ACCOUNT_FOR_TOKEN"
    TOKEN_HAS_NO_SUPPLY_KEY = "TOKEN_HAS_NO_SUPPLY_KEY"
    TOKEN_HAS_NO_FREEZE_KEY = "TOKEN_HAS_NO_FREEZE_KEY"
    TOKEN_MAX_SUPPLY_REACHED = "TOKEN_MAX_SUPPLY_REACHED"
    INVALID_TOKEN_MINT_AMOUNT = "INVALID_TOKEN_MINT_AMOUNT"
    INVALID_TOKEN_BURN_AMOUNT = "INVALID_TOKEN_BURN_AMOUNT"
    TOKEN_NOT_ASSOCIATED_TO_ACCOUNT = "TOKEN_NOT_ASSOCIATED_TO_ACCOUNT"
    TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT = "TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT"
    ACCOUNT_FROZEN_FOR_TOKEN = "ACCOUNT_FROZEN_FOR_TOKEN"
    INSUFFICIENT_TOKEN_BALANCE = "INSUFFICIENT_TOKEN_BALANCE"
    TRANSFERS_NOT_ZERO_SUM_FOR_TOKEN = "TRANSFERS_NOT_ZERO_SUM_FOR_TOKEN"
    INVALID_TOPIC_ID = "INVALID_TOPIC_ID"
    INVALID_TOPIC_MESSAGE = "INVALID_TOPIC_MESSAGE"
    MESSAGE_SIZE_TOO_LARGE = "MESSAGE_SIZE_TOO_LARGE"
    MEMO_TOO_LONG = "MEMO_TOO_LONG"

    @property
    def is_success(self) -> bool:
        return self is Status.SUCCESS

    def __str__(self) -> str:
        return self.value


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class ConservationViolation(LedgerError):
    """Raised when the legs of a transfer do not sum to zero for some token (or hbar)."""
    pass


class TransactionFrozen(LedgerError):
    """Raised when adding to a transfer intent that has already been frozen."""
    pass


class StatusError(LedgerError):
    """Raised for any network outcome other than SUCCESS. Carries the status."""

    def __init__(self, status: Status, message: Optional[str] = None):
        self.status = status
        super().__init__(message or f"status {status.value}")


class PrecheckStatusError(StatusError):
    """Raised when a query is rejected (unknown or deleted account, unknown token or topic)."""
    pass


class ReceiptStatusError(StatusError):
    """Raised when a submitted transaction reached a terminal status other than SUCCESS."""

    def __init__(self, receipt: 'Receipt', message: Optional[str] = None):
        self.receipt = receipt
        super().__init__(
            receipt.status,
            message or f"transaction {receipt.transaction_id} failed with status {receipt.status.value}",
        )


class Unauthorized(ReceiptStatusError):
    """Raised when a required signature is missing or invalid (INVALID_SIGNATURE)."""
    pass


class NotAssociated(ReceiptStatusError):
    """Raised when a transfer touches an account not associated with the token."""
    pass


_RECEIPT_ERRORS = {
    Status.INVALID_SIGNATURE: Unauthorized,
    Status.TOKEN_NOT_ASSOCIATED_TO_ACCOUNT: NotAssociated,
}


# ============================================================================
# QUERY RESULTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountBalance:
    """
    Result of a balance query.

    Attributes:
        account_id: The queried account.
        hbars: Base-currency balance in hbar.
        tokens: Balance per associated token, in the token's smallest unit.
                Tokens the account was never associated with are absent.
    """
    account_id: str
    hbars: Decimal
    tokens: Mapping[str, int] = field(default_factory=dict)

    @property
    def tinybars(self) -> int:
        return to_tinybars(self.hbars)

    def token_balance(self, token_id: str) -> int:
        """Balance of one token; an absent entry is reported as zero."""
        return self.tokens.get(token_id, 0)


@dataclass(frozen=True, slots=True)
class TokenInfo:
    """Snapshot of a fungible token's definition and supply."""
    token_id: str
    name: str
    symbol: str
    decimals: int
    total_supply: int
    treasury_account_id: str
    admin_key: Optional['Key'] = None
    supply_key: Optional['Key'] = None
    freeze_key: Optional['Key'] = None
    max_supply: Optional[int] = None


@dataclass(frozen=True, slots=True)
class TopicInfo:
    """Snapshot of a consensus topic."""
    topic_id: str
    memo: str
    sequence_number: int
    submit_key: Optional['Key'] = None
    admin_key: Optional['Key'] = None


@dataclass(frozen=True, slots=True)
class TopicMessage:
    """A message as delivered by a topic subscription."""
    topic_id: str
    sequence_number: int
    contents: bytes
    consensus_timestamp: datetime

    def text(self, encoding: str = "utf-8") -> str:
        return self.contents.decode(encoding)


# ============================================================================
# RECEIPT
# ============================================================================

@dataclass(frozen=True, slots=True)
class Receipt:
    """
    Read-only evidence of a submitted transaction's terminal outcome.

    Attributes:
        status: Terminal status; only Status.SUCCESS is success.
        transaction_id: Network-assigned identifier ("payer@sequence").
        account_id: Created account (account create only).
        token_id: Created token (token create only).
        topic_id: Created topic (topic create only).
        topic_sequence_number: Sequence number of a submitted message.
        total_supply: Token supply after a mint or burn.
    """
    status: Status
    transaction_id: str
    account_id: Optional[str] = None
    token_id: Optional[str] = None
    topic_id: Optional[str] = None
    topic_sequence_number: Optional[int] = None
    total_supply: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status.is_success

    def raise_for_status(self) -> 'Receipt':
        """
        Return self on SUCCESS, otherwise raise the matching ReceiptStatusError.

        INVALID_SIGNATURE raises Unauthorized and TOKEN_NOT_ASSOCIATED_TO_ACCOUNT
        raises NotAssociated; every other failure raises ReceiptStatusError.
        """
        if self.status.is_success:
            return self
        error_class = _RECEIPT_ERRORS.get(self.status, ReceiptStatusError)
        raise error_class(self)


# ============================================================================
# PROTOCOLS
# ============================================================================

class TopicSubscription(Protocol):
    """Handle returned by LedgerClient.subscribe_topic()."""

    def unsubscribe(self) -> None:
        ...


@runtime_checkable
class LedgerClient(Protocol):
    """
    Interface to a ledger used by the reconciler and the step definitions.

    Queries never mutate state. execute() signs the transaction as payer with
    the client's operator key, submits it, and returns the terminal receipt.
    Failures come back as receipt statuses, not exceptions.
    """

    @property
    def operator_account_id(self) -> Optional[str]:
        """Account that pays for and co-signs executed transactions."""
        ...

    def get_account_balance(self, account_id: str) -> AccountBalance:
        """Return hbar and token balances. Raises PrecheckStatusError for unknown accounts."""
        ...

    def get_token_info(self, token_id: str) -> TokenInfo:
        """Return the token's definition. Raises PrecheckStatusError for unknown tokens."""
        ...

    def get_topic_info(self, topic_id: str) -> TopicInfo:
        """Return the topic's definition. Raises PrecheckStatusError for unknown topics."""
        ...

    def execute(self, transaction: 'Transaction') -> Receipt:
        """Sign as payer, submit, and wait for the terminal receipt."""
        ...

    def subscribe_topic(
        self,
        topic_id: str,
        on_message: MessageHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> TopicSubscription:
        """Deliver every existing and future message of a topic to on_message."""
        ...
