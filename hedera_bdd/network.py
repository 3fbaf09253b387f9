"""
network.py - Stateful stand-in for the public test network

InMemoryNetwork is the only module that mutates ledger state. It accepts
signed transactions, validates them the way the network does, and answers
every submission with a Receipt whose Status tells the outcome.

Key responsibilities:
    - Accounts, hbar balances and transaction fees (fees move to the fee
      collection account, so hbar is conserved)
    - Fungible tokens: create, associate, mint, burn, freeze, transfer
    - Consensus topics: create, submit, subscribe
    - Signature checks for payers, debited accounts and entity keys
    - Atomic application: a transaction either fully applies or changes
      nothing beyond the fee
    - Always validates and always logs consensus-reached transactions

Client binds an operator (payer account + key) to a network and implements
the LedgerClient protocol.

Thread Safety:
    Not thread-safe. Scenarios run their steps sequentially against their own
    network instance.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
import logging
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .core import (
    AccountBalance, Receipt, Status, TokenInfo, TopicInfo, TopicMessage,
    LedgerError, PrecheckStatusError,
    MessageHandler, ErrorHandler,
    FEE_COLLECTION_ACCOUNT, MAX_MESSAGE_BYTES, MAX_TOKEN_NAME_LENGTH,
    to_hbar, to_tinybars,
)
from .keys import Key, PrivateKey, as_public_key
from .transactions import (
    Transaction, TransferTransaction,
    AccountCreate, AccountDelete,
    TokenCreate, TokenAssociate, TokenMint, TokenBurn, TokenFreeze, TokenUnfreeze,
    TopicCreate, TopicMessageSubmit,
)

logger = logging.getLogger(__name__)

# Outcome of a handler: status plus receipt fields for a successful apply.
HandlerResult = Tuple[Status, Dict[str, Any]]

MAX_MEMO_LENGTH = 100
MAX_TOKEN_DECIMALS = 18


# ============================================================================
# INTERNAL STATE
# ============================================================================

@dataclass
class _AccountState:
    account_id: str
    key: Key
    tinybars: int = 0
    deleted: bool = False


@dataclass
class _TokenState:
    token_id: str
    name: str
    symbol: str
    decimals: int
    treasury_account_id: str
    admin_key: Optional[Key]
    supply_key: Optional[Key]
    freeze_key: Optional[Key]
    max_supply: Optional[int]
    total_supply: int = 0
    # Associated accounts only; absence means "never associated"
    balances: Dict[str, int] = field(default_factory=dict)
    frozen: Set[str] = field(default_factory=set)

    def info(self) -> TokenInfo:
        return TokenInfo(
            token_id=self.token_id,
            name=self.name,
            symbol=self.symbol,
            decimals=self.decimals,
            total_supply=self.total_supply,
            treasury_account_id=self.treasury_account_id,
            admin_key=self.admin_key,
            supply_key=self.supply_key,
            freeze_key=self.freeze_key,
            max_supply=self.max_supply,
        )


@dataclass
class _TopicState:
    topic_id: str
    memo: str
    submit_key: Optional[Key]
    admin_key: Optional[Key]
    messages: List[TopicMessage] = field(default_factory=list)
    subscriptions: List['Subscription'] = field(default_factory=list)

    def info(self) -> TopicInfo:
        return TopicInfo(
            topic_id=self.topic_id,
            memo=self.memo,
            sequence_number=len(self.messages),
            submit_key=self.submit_key,
            admin_key=self.admin_key,
        )


# ============================================================================
# AUDIT RECORD
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """
    Immutable audit entry for a transaction that reached consensus.

    Failed transactions are recorded too: they still paid their fee.
    """
    transaction_id: str
    kind: str
    digest: str
    payer_account_id: str
    status: Status
    fee_tinybars: int
    consensus_time: datetime
    sequence_number: int
    memo: str = ""

    def __repr__(self) -> str:
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        icon = "✓" if self.status.is_success else "✗"
        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' ' + self.kind + ': ' + self.transaction_id)}│",
            f"├{bar}┤",
            f"│{pad('   digest         : ' + self.digest)}│",
            f"│{pad('   payer          : ' + self.payer_account_id)}│",
            f"│{pad('   fee (hbar)     : ' + str(to_hbar(self.fee_tinybars)))}│",
            f"│{pad('   consensus time : ' + self.consensus_time.isoformat())}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
        ]
        if self.memo:
            lines.append(f"│{pad('   memo           : ' + self.memo)}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' ' + icon + ' ' + self.status.value)}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


# ============================================================================
# SUBSCRIPTIONS
# ============================================================================

class Subscription:
    """
    Live subscription to a topic's messages.

    Handler errors go to on_error when given; otherwise they are logged and
    delivery continues, as a mirror-node stream would. Errors raised by
    on_error itself are logged too.
    """

    def __init__(
        self,
        network: InMemoryNetwork,
        topic_id: str,
        on_message: MessageHandler,
        on_error: Optional[ErrorHandler] = None,
    ):
        self._network = network
        self.topic_id = topic_id
        self._on_message = on_message
        self._on_error = on_error
        self.active = True

    def deliver(self, message: TopicMessage) -> None:
        if not self.active:
            return
        try:
            self._on_message(message)
        except Exception as exc:
            if self._on_error is None:
                logger.exception("Unhandled error in subscriber of topic %s", self.topic_id)
                return
            try:
                self._on_error(exc)
            except Exception:
                logger.exception("Error handler of topic %s subscriber failed", self.topic_id)

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._network._detach(self)


# ============================================================================
# NETWORK
# ============================================================================

class InMemoryNetwork:
    """
    In-memory ledger network with full validation and an audit trail.

    Example:
        network = InMemoryNetwork()
        treasury_key = PrivateKey.generate()
        treasury_id = network.create_genesis_account(treasury_key, Decimal("1000"))
        client = network.client(treasury_id, treasury_key)
        receipt = client.execute(TokenCreate(
            name="Test Token", symbol="HTT", decimals=2,
            initial_supply=1000, treasury_account_id=treasury_id,
        ))
    """

    DEFAULT_TRANSACTION_FEE = 100_000  # tinybars (0.001 hbar)
    CONSENSUS_TICK = timedelta(milliseconds=1)

    def __init__(
        self,
        name: str = "testnet",
        initial_time: Optional[datetime] = None,
        transaction_fee: int = DEFAULT_TRANSACTION_FEE,
        verbose: bool = False,
        first_entity_num: int = 1001,
    ):
        """
        Create a network.

        Args:
            name: Network identifier, used in logs
            initial_time: Consensus clock start (default: 2025-01-01)
            transaction_fee: Flat fee charged to the payer, in tinybars
            verbose: Print a summary box for every consensus-reached transaction
            first_entity_num: Number assigned to the first created entity
        """
        if transaction_fee < 0:
            raise ValueError(f"transaction_fee cannot be negative, got {transaction_fee}")
        self.name = name
        self.transaction_fee = transaction_fee
        self.verbose = verbose
        self._current_time: datetime = initial_time or datetime(2025, 1, 1)
        self._next_entity_num = first_entity_num
        self._next_sequence = 0
        self._accounts: Dict[str, _AccountState] = {}
        self._tokens: Dict[str, _TokenState] = {}
        self._topics: Dict[str, _TopicState] = {}
        self.seen_digests: Set[str] = set()
        self.transaction_log: List[TransactionRecord] = []
        # Total hbar ever created (genesis); fees and transfers only redistribute it
        self._genesis_tinybars = 0

        self._handlers: Dict[type, Callable[[Any, _AccountState], HandlerResult]] = {
            TransferTransaction: self._handle_transfer,
            AccountCreate: self._handle_account_create,
            AccountDelete: self._handle_account_delete,
            TokenCreate: self._handle_token_create,
            TokenAssociate: self._handle_token_associate,
            TokenMint: self._handle_token_mint,
            TokenBurn: self._handle_token_burn,
            TokenFreeze: self._handle_token_freeze,
            TokenUnfreeze: self._handle_token_unfreeze,
            TopicCreate: self._handle_topic_create,
            TopicMessageSubmit: self._handle_topic_message_submit,
        }

        # Fee collector exists from the start and holds no key anyone owns
        self._accounts[FEE_COLLECTION_ACCOUNT] = _AccountState(
            FEE_COLLECTION_ACCOUNT, PrivateKey.generate().public_key
        )

    # ========================================================================
    # ENTITIES AND GENESIS
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Consensus time of the most recent transaction."""
        return self._current_time

    def _next_entity_id(self) -> str:
        # Roster accounts may already occupy numbers in the counter's range
        while True:
            entity_id = f"0.0.{self._next_entity_num}"
            self._next_entity_num += 1
            if entity_id not in self._accounts and entity_id not in self._tokens \
                    and entity_id not in self._topics:
                return entity_id

    def create_genesis_account(
        self,
        key: Any,
        hbar: Any,
        account_id: Optional[str] = None,
    ) -> str:
        """
        Create a pre-funded account outside of any transaction.

        This is how configured roster accounts come into existence; it is the
        only operation that creates hbar.

        Args:
            key: PrivateKey, PublicKey or KeyList controlling the account
            hbar: Starting balance in hbar
            account_id: Fixed id (e.g. from a roster file); generated if omitted

        Returns:
            The account id

        Raises:
            ValueError: If account_id is already taken or hbar is negative
        """
        tinybars = to_tinybars(hbar)
        if tinybars < 0:
            raise ValueError(f"genesis balance cannot be negative, got {hbar}")
        if account_id is None:
            account_id = self._next_entity_id()
        elif account_id in self._accounts:
            raise ValueError(f"Account {account_id} already exists")
        self._accounts[account_id] = _AccountState(account_id, as_public_key(key), tinybars)
        self._genesis_tinybars += tinybars
        return account_id

    def client(
        self,
        operator_account_id: Optional[str] = None,
        operator_key: Optional[PrivateKey] = None,
    ) -> Client:
        """Return a client for this network, optionally with an operator."""
        client = Client(self)
        if operator_account_id is not None:
            if operator_key is None:
                raise ValueError("operator_key is required with operator_account_id")
            client = client.with_operator(operator_account_id, operator_key)
        return client

    # ========================================================================
    # QUERIES (read-only)
    # ========================================================================

    def _live_account(self, account_id: str) -> _AccountState:
        account = self._accounts.get(account_id)
        if account is None:
            raise PrecheckStatusError(Status.INVALID_ACCOUNT_ID, f"Account {account_id} does not exist")
        if account.deleted:
            raise PrecheckStatusError(Status.ACCOUNT_DELETED, f"Account {account_id} is deleted")
        return account

    def get_account_balance(self, account_id: str) -> AccountBalance:
        """
        Balance query: hbar plus every associated token's balance.

        Raises:
            PrecheckStatusError: INVALID_ACCOUNT_ID or ACCOUNT_DELETED
        """
        account = self._live_account(account_id)
        tokens = {
            token_id: token.balances[account_id]
            for token_id, token in self._tokens.items()
            if account_id in token.balances
        }
        return AccountBalance(account_id=account_id, hbars=to_hbar(account.tinybars), tokens=tokens)

    def get_token_info(self, token_id: str) -> TokenInfo:
        token = self._tokens.get(token_id)
        if token is None:
            raise PrecheckStatusError(Status.INVALID_TOKEN_ID, f"Token {token_id} does not exist")
        return token.info()

    def get_topic_info(self, topic_id: str) -> TopicInfo:
        topic = self._topics.get(topic_id)
        if topic is None:
            raise PrecheckStatusError(Status.INVALID_TOPIC_ID, f"Topic {topic_id} does not exist")
        return topic.info()

    def subscribe_topic(
        self,
        topic_id: str,
        on_message: MessageHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Subscription:
        """
        Subscribe to a topic. Existing messages are replayed immediately, in
        sequence order; later messages are delivered as they reach consensus.
        """
        topic = self._topics.get(topic_id)
        if topic is None:
            raise PrecheckStatusError(Status.INVALID_TOPIC_ID, f"Topic {topic_id} does not exist")
        subscription = Subscription(self, topic_id, on_message, on_error)
        topic.subscriptions.append(subscription)
        for message in list(topic.messages):
            subscription.deliver(message)
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        topic = self._topics.get(subscription.topic_id)
        if topic is not None and subscription in topic.subscriptions:
            topic.subscriptions.remove(subscription)

    def list_accounts(self) -> List[str]:
        return sorted(a for a, state in self._accounts.items() if not state.deleted)

    def is_associated(self, account_id: str, token_id: str) -> bool:
        token = self._tokens.get(token_id)
        return token is not None and account_id in token.balances

    def total_supply(self, token_id: str) -> int:
        """
        Sum of all balances of a token, in sorted account order.

        Raises:
            PrecheckStatusError: If the token does not exist
        """
        token = self._tokens.get(token_id)
        if token is None:
            raise PrecheckStatusError(Status.INVALID_TOKEN_ID, f"Token {token_id} does not exist")
        return sum(token.balances[a] for a in sorted(token.balances))

    def total_tinybars(self) -> int:
        return sum(self._accounts[a].tinybars for a in sorted(self._accounts))

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Verify that conservation holds for hbar and for every token.

        Hbar: the sum over all accounts equals what genesis created.
        Tokens: the sum over all holders equals the recorded total supply.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all conservation laws hold
            - 'supplies': Dict[str, int] - Current sum per token (and "HBAR" in tinybars)
            - 'discrepancies': List[Dict] - unit, expected, actual, difference
        """
        supplies: Dict[str, int] = {}
        discrepancies = []

        hbar_total = self.total_tinybars()
        supplies["HBAR"] = hbar_total
        if hbar_total != self._genesis_tinybars:
            discrepancies.append({
                'unit': "HBAR",
                'expected': self._genesis_tinybars,
                'actual': hbar_total,
                'difference': hbar_total - self._genesis_tinybars,
            })

        for token_id, token in self._tokens.items():
            actual = self.total_supply(token_id)
            supplies[token_id] = actual
            if actual != token.total_supply:
                discrepancies.append({
                    'unit': token_id,
                    'expected': token.total_supply,
                    'actual': actual,
                    'difference': actual - token.total_supply,
                })

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # SUBMISSION (Mutating)
    # ========================================================================

    def _generate_transaction_id(self, payer_account_id: str, sequence: int) -> str:
        """Format: {payer}@{seconds}.{sequence:09d}, unique within the network."""
        seconds = int(self._current_time.timestamp())
        return f"{payer_account_id}@{seconds}.{sequence:09d}"

    def submit(self, transaction: Transaction, payer_account_id: str) -> Receipt:
        """
        Validate and apply a signed transaction atomically.

        Precheck failures (unknown or deleted payer, missing payer signature,
        duplicate body, payer unable to cover the fee, overlong memo) cost
        nothing and are not logged. Past precheck the fee is charged whatever
        the outcome, and the record is appended to the transaction log.

        Args:
            transaction: Signed transaction body
            payer_account_id: Account paying the fee; must have signed

        Returns:
            Receipt with the terminal status (never raises for ledger failures)
        """
        sequence = self._next_sequence
        self._next_sequence += 1
        transaction_id = self._generate_transaction_id(payer_account_id, sequence)

        handler = self._handlers.get(type(transaction))
        if handler is None:
            raise LedgerError(f"Unsupported transaction type {transaction.kind}")

        status = self._precheck(transaction, payer_account_id)
        if status is not Status.SUCCESS:
            if self.verbose:
                print(f"✗ PRECHECK {status.value}: {transaction.kind} {transaction_id}")
            logger.debug("Precheck failed for %s %s: %s", transaction.kind, transaction_id, status.value)
            return Receipt(status=status, transaction_id=transaction_id)

        # Consensus reached: advance the clock, charge the fee, then apply
        self._current_time += self.CONSENSUS_TICK
        payer = self._accounts[payer_account_id]
        payer.tinybars -= self.transaction_fee
        self._accounts[FEE_COLLECTION_ACCOUNT].tinybars += self.transaction_fee
        self.seen_digests.add(transaction.digest())

        status, receipt_fields = handler(transaction, payer)
        if status is not Status.SUCCESS:
            receipt_fields = {}

        record = TransactionRecord(
            transaction_id=transaction_id,
            kind=transaction.kind,
            digest=transaction.digest(),
            payer_account_id=payer_account_id,
            status=status,
            fee_tinybars=self.transaction_fee,
            consensus_time=self._current_time,
            sequence_number=sequence,
            memo=transaction.memo,
        )
        self.transaction_log.append(record)
        if self.verbose:
            print(repr(record))
        logger.debug("%s %s -> %s", transaction.kind, transaction_id, status.value)

        return Receipt(status=status, transaction_id=transaction_id, **receipt_fields)

    def _precheck(self, transaction: Transaction, payer_account_id: str) -> Status:
        payer = self._accounts.get(payer_account_id)
        if payer is None:
            return Status.PAYER_ACCOUNT_NOT_FOUND
        if payer.deleted:
            return Status.ACCOUNT_DELETED
        if len(transaction.memo) > MAX_MEMO_LENGTH:
            return Status.MEMO_TOO_LONG
        if not transaction.is_signed_by(payer.key):
            return Status.INVALID_SIGNATURE
        if transaction.digest() in self.seen_digests:
            return Status.DUPLICATE_TRANSACTION
        if payer.tinybars < self.transaction_fee:
            return Status.INSUFFICIENT_PAYER_BALANCE
        return Status.SUCCESS

    def _account_status(self, account_id: str) -> Status:
        account = self._accounts.get(account_id)
        if account is None:
            return Status.INVALID_ACCOUNT_ID
        if account.deleted:
            return Status.ACCOUNT_DELETED
        return Status.SUCCESS

    # ------------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------------

    def _handle_transfer(self, tx: TransferTransaction, payer: _AccountState) -> HandlerResult:
        if not tx.token_transfers and not tx.hbar_transfers:
            return Status.EMPTY_TRANSFER, {}

        account_ids = [leg.account_id for leg in tx.hbar_transfers]
        account_ids += [leg.account_id for leg in tx.token_transfers]
        for account_id in account_ids:
            status = self._account_status(account_id)
            if status is not Status.SUCCESS:
                return status, {}

        if tx.hbar_net() != 0:
            return Status.INVALID_ACCOUNT_AMOUNTS, {}
        for token_id, net in tx.net_by_token().items():
            if token_id not in self._tokens:
                return Status.INVALID_TOKEN_ID, {}
            if net != 0:
                return Status.TRANSFERS_NOT_ZERO_SUM_FOR_TOKEN, {}

        signers = tx.verified_signers()
        for account_id in tx.debited_accounts():
            if not self._accounts[account_id].key.is_satisfied_by(signers):
                return Status.INVALID_SIGNATURE, {}

        for leg in tx.token_transfers:
            token = self._tokens[leg.token_id]
            if leg.account_id not in token.balances:
                return Status.TOKEN_NOT_ASSOCIATED_TO_ACCOUNT, {}
            if leg.account_id in token.frozen:
                return Status.ACCOUNT_FROZEN_FOR_TOKEN, {}

        # Net changes per holding, validated before anything is applied
        token_net: Dict[Tuple[str, str], int] = {}
        for leg in tx.token_transfers:
            key = (leg.token_id, leg.account_id)
            token_net[key] = token_net.get(key, 0) + leg.amount
        for (token_id, account_id), delta in token_net.items():
            if self._tokens[token_id].balances[account_id] + delta < 0:
                return Status.INSUFFICIENT_TOKEN_BALANCE, {}

        hbar_net: Dict[str, int] = {}
        for leg in tx.hbar_transfers:
            hbar_net[leg.account_id] = hbar_net.get(leg.account_id, 0) + leg.tinybars
        for account_id, delta in hbar_net.items():
            if self._accounts[account_id].tinybars + delta < 0:
                return Status.INSUFFICIENT_ACCOUNT_BALANCE, {}

        for (token_id, account_id), delta in token_net.items():
            self._tokens[token_id].balances[account_id] += delta
        for account_id, delta in hbar_net.items():
            self._accounts[account_id].tinybars += delta
        return Status.SUCCESS, {}

    # ------------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------------

    def _handle_account_create(self, tx: AccountCreate, payer: _AccountState) -> HandlerResult:
        initial = tx.initial_tinybars
        if initial < 0:
            return Status.INVALID_INITIAL_BALANCE, {}
        if payer.tinybars < initial:
            return Status.INSUFFICIENT_PAYER_BALANCE, {}
        account_id = self._next_entity_id()
        self._accounts[account_id] = _AccountState(account_id, tx.key, initial)
        payer.tinybars -= initial
        return Status.SUCCESS, {'account_id': account_id}

    def _handle_account_delete(self, tx: AccountDelete, payer: _AccountState) -> HandlerResult:
        for account_id in (tx.account_id, tx.transfer_account_id):
            status = self._account_status(account_id)
            if status is not Status.SUCCESS:
                return status, {}
        if tx.account_id == tx.transfer_account_id:
            return Status.TRANSFER_ACCOUNT_SAME_AS_DELETE_ACCOUNT, {}
        account = self._accounts[tx.account_id]
        if not tx.is_signed_by(account.key):
            return Status.INVALID_SIGNATURE, {}
        if any(token.treasury_account_id == tx.account_id for token in self._tokens.values()):
            return Status.ACCOUNT_IS_TREASURY, {}
        if any(token.balances.get(tx.account_id, 0) != 0 for token in self._tokens.values()):
            return Status.TRANSACTION_REQUIRES_ZERO_TOKEN_BALANCES, {}

        self._accounts[tx.transfer_account_id].tinybars += account.tinybars
        account.tinybars = 0
        account.deleted = True
        for token in self._tokens.values():
            token.balances.pop(tx.account_id, None)
            token.frozen.discard(tx.account_id)
        return Status.SUCCESS, {}

    # ------------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------------

    def _handle_token_create(self, tx: TokenCreate, payer: _AccountState) -> HandlerResult:
        if not tx.name or not tx.name.strip():
            return Status.MISSING_TOKEN_NAME, {}
        if len(tx.name) > MAX_TOKEN_NAME_LENGTH:
            return Status.TOKEN_NAME_TOO_LONG, {}
        if not tx.symbol or not tx.symbol.strip():
            return Status.MISSING_TOKEN_SYMBOL, {}
        if len(tx.symbol) > MAX_TOKEN_NAME_LENGTH:
            return Status.TOKEN_SYMBOL_TOO_LONG, {}
        if not 0 <= tx.decimals <= MAX_TOKEN_DECIMALS:
            return Status.INVALID_TOKEN_DECIMALS, {}
        if tx.initial_supply < 0:
            return Status.INVALID_TOKEN_INITIAL_SUPPLY, {}
        if tx.max_supply is not None and (tx.max_supply <= 0 or tx.initial_supply > tx.max_supply):
            return Status.INVALID_TOKEN_MAX_SUPPLY, {}
        if self._account_status(tx.treasury_account_id) is not Status.SUCCESS:
            return Status.INVALID_TREASURY_ACCOUNT_FOR_TOKEN, {}

        treasury = self._accounts[tx.treasury_account_id]
        if not tx.is_signed_by(treasury.key):
            return Status.INVALID_SIGNATURE, {}
        if tx.admin_key is not None and not tx.is_signed_by(tx.admin_key):
            return Status.INVALID_SIGNATURE, {}

        token_id = self._next_entity_id()
        self._tokens[token_id] = _TokenState(
            token_id=token_id,
            name=tx.name,
            symbol=tx.symbol,
            decimals=tx.decimals,
            treasury_account_id=tx.treasury_account_id,
            admin_key=tx.admin_key,
            supply_key=tx.supply_key,
            freeze_key=tx.freeze_key,
            max_supply=tx.max_supply,
            total_supply=tx.initial_supply,
            balances={tx.treasury_account_id: tx.initial_supply},
        )
        return Status.SUCCESS, {'token_id': token_id}

    def _handle_token_associate(self, tx: TokenAssociate, payer: _AccountState) -> HandlerResult:
        status = self._account_status(tx.account_id)
        if status is not Status.SUCCESS:
            return status, {}
        for token_id in tx.token_ids:
            if token_id not in self._tokens:
                return Status.INVALID_TOKEN_ID, {}
        if not tx.is_signed_by(self._accounts[tx.account_id].key):
            return Status.INVALID_SIGNATURE, {}
        if len(set(tx.token_ids)) != len(tx.token_ids):
            return Status.TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT, {}
        for token_id in tx.token_ids:
            if tx.account_id in self._tokens[token_id].balances:
                return Status.TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT, {}

        for token_id in tx.token_ids:
            self._tokens[token_id].balances[tx.account_id] = 0
        return Status.SUCCESS, {}

    def _supply_change_status(self, token: Optional[_TokenState], tx: Transaction) -> Status:
        if token is None:
            return Status.INVALID_TOKEN_ID
        if token.supply_key is None:
            return Status.TOKEN_HAS_NO_SUPPLY_KEY
        if not tx.is_signed_by(token.supply_key):
            return Status.INVALID_SIGNATURE
        return Status.SUCCESS

    def _handle_token_mint(self, tx: TokenMint, payer: _AccountState) -> HandlerResult:
        token = self._tokens.get(tx.token_id)
        status = self._supply_change_status(token, tx)
        if status is not Status.SUCCESS:
            return status, {}
        if tx.amount <= 0:
            return Status.INVALID_TOKEN_MINT_AMOUNT, {}
        if token.max_supply is not None and token.total_supply + tx.amount > token.max_supply:
            return Status.TOKEN_MAX_SUPPLY_REACHED, {}

        token.balances[token.treasury_account_id] += tx.amount
        token.total_supply += tx.amount
        return Status.SUCCESS, {'total_supply': token.total_supply}

    def _handle_token_burn(self, tx: TokenBurn, payer: _AccountState) -> HandlerResult:
        token = self._tokens.get(tx.token_id)
        status = self._supply_change_status(token, tx)
        if status is not Status.SUCCESS:
            return status, {}
        if tx.amount <= 0:
            return Status.INVALID_TOKEN_BURN_AMOUNT, {}
        if token.balances[token.treasury_account_id] < tx.amount:
            return Status.INSUFFICIENT_TOKEN_BALANCE, {}

        token.balances[token.treasury_account_id] -= tx.amount
        token.total_supply -= tx.amount
        return Status.SUCCESS, {'total_supply': token.total_supply}

    def _freeze_status(self, tx: Any) -> Status:
        token = self._tokens.get(tx.token_id)
        if token is None:
            return Status.INVALID_TOKEN_ID
        if token.freeze_key is None:
            return Status.TOKEN_HAS_NO_FREEZE_KEY
        status = self._account_status(tx.account_id)
        if status is not Status.SUCCESS:
            return status
        if tx.account_id not in token.balances:
            return Status.TOKEN_NOT_ASSOCIATED_TO_ACCOUNT
        if not tx.is_signed_by(token.freeze_key):
            return Status.INVALID_SIGNATURE
        return Status.SUCCESS

    def _handle_token_freeze(self, tx: TokenFreeze, payer: _AccountState) -> HandlerResult:
        status = self._freeze_status(tx)
        if status is Status.SUCCESS:
            self._tokens[tx.token_id].frozen.add(tx.account_id)
        return status, {}

    def _handle_token_unfreeze(self, tx: TokenUnfreeze, payer: _AccountState) -> HandlerResult:
        status = self._freeze_status(tx)
        if status is Status.SUCCESS:
            self._tokens[tx.token_id].frozen.discard(tx.account_id)
        return status, {}

    # ------------------------------------------------------------------------
    # Consensus topics
    # ------------------------------------------------------------------------

    def _handle_topic_create(self, tx: TopicCreate, payer: _AccountState) -> HandlerResult:
        if len(tx.topic_memo) > MAX_MEMO_LENGTH:
            return Status.MEMO_TOO_LONG, {}
        if tx.admin_key is not None and not tx.is_signed_by(tx.admin_key):
            return Status.INVALID_SIGNATURE, {}
        topic_id = self._next_entity_id()
        self._topics[topic_id] = _TopicState(
            topic_id=topic_id,
            memo=tx.topic_memo,
            submit_key=tx.submit_key,
            admin_key=tx.admin_key,
        )
        return Status.SUCCESS, {'topic_id': topic_id}

    def _handle_topic_message_submit(self, tx: TopicMessageSubmit, payer: _AccountState) -> HandlerResult:
        topic = self._topics.get(tx.topic_id)
        if topic is None:
            return Status.INVALID_TOPIC_ID, {}
        if not tx.message:
            return Status.INVALID_TOPIC_MESSAGE, {}
        if len(tx.message) > MAX_MESSAGE_BYTES:
            return Status.MESSAGE_SIZE_TOO_LARGE, {}
        if topic.submit_key is not None and not tx.is_signed_by(topic.submit_key):
            return Status.INVALID_SIGNATURE, {}

        message = TopicMessage(
            topic_id=topic.topic_id,
            sequence_number=len(topic.messages) + 1,
            contents=tx.message,
            consensus_timestamp=self._current_time,
        )
        topic.messages.append(message)
        for subscription in list(topic.subscriptions):
            subscription.deliver(message)
        return Status.SUCCESS, {'topic_sequence_number': message.sequence_number}


# ============================================================================
# CLIENT
# ============================================================================

@dataclass(frozen=True, slots=True)
class Operator:
    """Account that pays for and signs every transaction a client executes."""
    account_id: str
    private_key: PrivateKey


class Client:
    """
    Operator-bound view of an InMemoryNetwork implementing LedgerClient.

    Clients are cheap: with_operator() returns a new client sharing the same
    network, so switching payer never mutates a client other steps hold.
    """

    def __init__(self, network: InMemoryNetwork, operator: Optional[Operator] = None):
        self.network = network
        self.operator = operator

    @property
    def operator_account_id(self) -> Optional[str]:
        return self.operator.account_id if self.operator else None

    def with_operator(self, account_id: str, private_key: PrivateKey) -> Client:
        return Client(self.network, Operator(account_id, private_key))

    def get_account_balance(self, account_id: str) -> AccountBalance:
        return self.network.get_account_balance(account_id)

    def get_token_info(self, token_id: str) -> TokenInfo:
        return self.network.get_token_info(token_id)

    def get_topic_info(self, topic_id: str) -> TopicInfo:
        return self.network.get_topic_info(topic_id)

    def subscribe_topic(
        self,
        topic_id: str,
        on_message: MessageHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Subscription:
        return self.network.subscribe_topic(topic_id, on_message, on_error)

    def execute(self, transaction: Transaction) -> Receipt:
        """
        Sign with the operator key and submit with the operator as payer.

        Raises:
            LedgerError: If the client has no operator
        """
        if self.operator is None:
            raise LedgerError("Client has no operator; call with_operator() first")
        signed = transaction.sign(self.operator.private_key)
        return self.network.submit(signed, payer_account_id=self.operator.account_id)

    def __repr__(self) -> str:
        return f"Client({self.network.name}, operator={self.operator_account_id})"
