"""
transactions.py - Immutable transaction bodies and the transfer builder

Every transaction is a frozen dataclass. Signing never mutates: sign() returns
a new transaction carrying one more SignaturePair over body_bytes(). The body
covers every field except the signatures, so adding a signature never
invalidates the ones already present.

TransferIntent is the only mutable piece: an aggregation of per-account deltas
that freeze() turns into a TransferTransaction after checking that the legs of
every token (and the hbar legs) sum to zero.

    intent = TransferIntent()
    intent.add_token_transfer(token_id, treasury_id, -500)
    intent.add_token_transfer(token_id, account_id, 500)
    tx = intent.freeze().sign(treasury_key)
    receipt = client.execute(tx)
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, is_dataclass, replace
from decimal import Decimal
import hashlib
import secrets
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .core import (
    ConservationViolation, TransactionFrozen,
    to_tinybars,
)
from .keys import Key, KeyList, PrivateKey, PublicKey, as_public_key


# ============================================================================
# CANONICAL SERIALIZATION
# ============================================================================

def _normalize_decimal(d: Decimal) -> str:
    """Render semantically equal Decimals identically ("1.0" and "1.00" -> "1")."""
    normalized = d.normalize()
    if normalized == normalized.to_integral_value():
        return str(int(normalized))
    return format(normalized, 'f')


def _canonicalize(value: Any) -> str:
    """
    Produce a deterministic string for a body value.

    Dict ordering and Decimal representation do not affect the output, so two
    semantically identical bodies always sign and hash the same.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return f"D:{_normalize_decimal(value)}"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, bytes):
        return f"B:{value.hex()}"
    if isinstance(value, (PublicKey, KeyList)):
        return f"K:{value.to_string()}"
    if is_dataclass(value):
        items = ",".join(
            f"{f.name}={_canonicalize(getattr(value, f.name))}" for f in fields(value)
        )
        return f"{type(value).__name__}({items})"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(item) for item in value) + "]"
    raise TypeError(f"cannot canonicalize {type(value).__name__}")


def _new_nonce() -> str:
    return secrets.token_hex(8)


# ============================================================================
# SIGNATURES AND BASE TRANSACTION
# ============================================================================

@dataclass(frozen=True, slots=True)
class SignaturePair:
    """A public key and its detached signature over a transaction body."""
    public_key: PublicKey
    signature: bytes


@dataclass(frozen=True, slots=True, kw_only=True)
class Transaction:
    """
    Base class for all transaction bodies.

    Attributes:
        memo: Free-text transaction memo.
        nonce: Random per-construction value; makes otherwise identical bodies
               distinct so only true resubmissions are duplicates.
        signatures: Signatures collected so far (excluded from the body).
    """
    memo: str = ""
    nonce: str = field(default_factory=_new_nonce)
    signatures: Tuple[SignaturePair, ...] = ()

    @property
    def kind(self) -> str:
        return type(self).__name__

    def body_bytes(self) -> bytes:
        """Canonical bytes covered by every signature."""
        body = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "signatures"
        }
        return f"{self.kind}|{_canonicalize(body)}".encode()

    def digest(self) -> str:
        """Content hash of the body, used for duplicate detection."""
        return hashlib.sha256(self.body_bytes()).hexdigest()[:16]

    def sign(self, key: PrivateKey) -> 'Transaction':
        """Return a copy carrying key's signature. Signing twice with one key is a no-op."""
        public_key = key.public_key
        if any(pair.public_key == public_key for pair in self.signatures):
            return self
        pair = SignaturePair(public_key, key.sign(self.body_bytes()))
        return replace(self, signatures=self.signatures + (pair,))

    def sign_all(self, keys: Iterable[PrivateKey]) -> 'Transaction':
        tx = self
        for key in keys:
            tx = tx.sign(key)
        return tx

    def verified_signers(self) -> FrozenSet[PublicKey]:
        """Public keys whose signatures verify against the current body."""
        body = self.body_bytes()
        return frozenset(
            pair.public_key for pair in self.signatures
            if pair.public_key.verify(body, pair.signature)
        )

    def is_signed_by(self, key: Key) -> bool:
        return key.is_satisfied_by(self.verified_signers())


# ============================================================================
# TRANSFERS
# ============================================================================

@dataclass(frozen=True, slots=True)
class TokenTransfer:
    """One signed delta of a token for one account (negative = debit)."""
    token_id: str
    account_id: str
    amount: int

    def __post_init__(self):
        if not self.token_id or not self.token_id.strip():
            raise ValueError("TokenTransfer token_id cannot be empty")
        if not self.account_id or not self.account_id.strip():
            raise ValueError("TokenTransfer account_id cannot be empty")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"TokenTransfer amount must be int, got {type(self.amount)}")
        if self.amount == 0:
            raise ValueError("TokenTransfer amount cannot be zero")


@dataclass(frozen=True, slots=True)
class HbarTransfer:
    """One signed hbar delta for one account, in tinybars."""
    account_id: str
    tinybars: int

    def __post_init__(self):
        if not self.account_id or not self.account_id.strip():
            raise ValueError("HbarTransfer account_id cannot be empty")
        if isinstance(self.tinybars, bool) or not isinstance(self.tinybars, int):
            raise ValueError(f"HbarTransfer tinybars must be int, got {type(self.tinybars)}")
        if self.tinybars == 0:
            raise ValueError("HbarTransfer amount cannot be zero")


@dataclass(frozen=True, slots=True, kw_only=True)
class TransferTransaction(Transaction):
    """Atomic multi-party transfer of hbar and tokens."""
    token_transfers: Tuple[TokenTransfer, ...] = ()
    hbar_transfers: Tuple[HbarTransfer, ...] = ()

    def token_ids(self) -> List[str]:
        seen: Dict[str, None] = {}
        for leg in self.token_transfers:
            seen.setdefault(leg.token_id, None)
        return list(seen)

    def net_by_token(self) -> Dict[str, int]:
        net: Dict[str, int] = {}
        for leg in self.token_transfers:
            net[leg.token_id] = net.get(leg.token_id, 0) + leg.amount
        return net

    def hbar_net(self) -> int:
        return sum(leg.tinybars for leg in self.hbar_transfers)

    def debited_accounts(self) -> List[str]:
        """Accounts whose balance of anything decreases; each must sign."""
        debited: Dict[str, None] = {}
        for leg in self.token_transfers:
            if leg.amount < 0:
                debited.setdefault(leg.account_id, None)
        for leg in self.hbar_transfers:
            if leg.tinybars < 0:
                debited.setdefault(leg.account_id, None)
        return list(debited)


class TransferIntent:
    """
    Mutable, unsigned aggregation of transfer legs.

    Adding to the same (token, account) pair accumulates. freeze() drops legs
    that net to zero and requires every token's legs, and the hbar legs, to
    sum to zero.

    Raises:
        TransactionFrozen: add_*() after freeze()
        ConservationViolation: freeze() on unbalanced legs
    """

    def __init__(self, memo: str = ""):
        self.memo = memo
        self._token_legs: Dict[Tuple[str, str], int] = {}
        self._hbar_legs: Dict[str, int] = {}
        self._frozen = False

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TransactionFrozen("transfer intent is frozen and can no longer be modified")

    def add_token_transfer(self, token_id: str, account_id: str, amount: int) -> TransferIntent:
        self._check_mutable()
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValueError(f"token amount must be int, got {type(amount)}")
        key = (token_id, account_id)
        self._token_legs[key] = self._token_legs.get(key, 0) + amount
        return self

    def add_hbar_transfer(self, account_id: str, hbar: Any) -> TransferIntent:
        self._check_mutable()
        self._hbar_legs[account_id] = self._hbar_legs.get(account_id, 0) + to_tinybars(hbar)
        return self

    @property
    def token_legs(self) -> Tuple[TokenTransfer, ...]:
        return tuple(
            TokenTransfer(token_id, account_id, amount)
            for (token_id, account_id), amount in self._token_legs.items()
            if amount != 0
        )

    @property
    def hbar_legs(self) -> Tuple[HbarTransfer, ...]:
        return tuple(
            HbarTransfer(account_id, tinybars)
            for account_id, tinybars in self._hbar_legs.items()
            if tinybars != 0
        )

    def imbalances(self) -> Dict[str, int]:
        """Non-zero sums keyed by token id ("HBAR" for the hbar legs, in tinybars)."""
        sums: Dict[str, int] = {}
        for (token_id, _), amount in self._token_legs.items():
            sums[token_id] = sums.get(token_id, 0) + amount
        hbar_sum = sum(self._hbar_legs.values())
        if hbar_sum:
            sums["HBAR"] = hbar_sum
        return {key: total for key, total in sums.items() if total != 0}

    def freeze(self) -> TransferTransaction:
        self._check_mutable()
        imbalances = self.imbalances()
        if imbalances:
            detail = ", ".join(f"{key}: {total:+d}" for key, total in imbalances.items())
            raise ConservationViolation(f"transfer legs do not sum to zero ({detail})")
        token_legs, hbar_legs = self.token_legs, self.hbar_legs
        if not token_legs and not hbar_legs:
            raise ValueError("transfer intent has no non-zero legs")
        self._frozen = True
        return TransferTransaction(
            memo=self.memo,
            token_transfers=token_legs,
            hbar_transfers=hbar_legs,
        )

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "open"
        return f"TransferIntent({len(self.token_legs)} token legs, {len(self.hbar_legs)} hbar legs, {state})"


# ============================================================================
# ACCOUNTS
# ============================================================================

@dataclass(frozen=True, slots=True, kw_only=True)
class AccountCreate(Transaction):
    """Create an account controlled by key, funded by the payer."""
    key: Key
    initial_balance: Decimal = Decimal("0")

    def __post_init__(self):
        object.__setattr__(self, 'key', as_public_key(self.key))
        if not isinstance(self.initial_balance, Decimal):
            object.__setattr__(self, 'initial_balance', Decimal(str(self.initial_balance)))

    @property
    def initial_tinybars(self) -> int:
        return to_tinybars(self.initial_balance)


@dataclass(frozen=True, slots=True, kw_only=True)
class AccountDelete(Transaction):
    """Delete an account, sweeping its hbar into transfer_account_id."""
    account_id: str
    transfer_account_id: str


# ============================================================================
# TOKENS
# ============================================================================

@dataclass(frozen=True, slots=True, kw_only=True)
class TokenCreate(Transaction):
    """
    Create a fungible token. The initial supply lands in the treasury.

    Without a supply key the supply is fixed forever.
    """
    name: str
    symbol: str
    treasury_account_id: str
    decimals: int = 0
    initial_supply: int = 0
    admin_key: Optional[Key] = None
    supply_key: Optional[Key] = None
    freeze_key: Optional[Key] = None
    max_supply: Optional[int] = None

    def __post_init__(self):
        for name in ('admin_key', 'supply_key', 'freeze_key'):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, as_public_key(value))


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenAssociate(Transaction):
    """Allow account_id to hold the given tokens."""
    account_id: str
    token_ids: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'token_ids', tuple(self.token_ids))


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenMint(Transaction):
    """Mint amount into the treasury. Requires the supply key."""
    token_id: str
    amount: int


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenBurn(Transaction):
    """Burn amount from the treasury. Requires the supply key."""
    token_id: str
    amount: int


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenFreeze(Transaction):
    """Freeze account_id's relationship with token_id. Requires the freeze key."""
    token_id: str
    account_id: str


@dataclass(frozen=True, slots=True, kw_only=True)
class TokenUnfreeze(Transaction):
    """Lift a freeze. Requires the freeze key."""
    token_id: str
    account_id: str


# ============================================================================
# CONSENSUS TOPICS
# ============================================================================

@dataclass(frozen=True, slots=True, kw_only=True)
class TopicCreate(Transaction):
    """Create a consensus topic. Without a submit key anyone may publish."""
    topic_memo: str = ""
    submit_key: Optional[Key] = None
    admin_key: Optional[Key] = None

    def __post_init__(self):
        for name in ('submit_key', 'admin_key'):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, as_public_key(value))


@dataclass(frozen=True, slots=True, kw_only=True)
class TopicMessageSubmit(Transaction):
    """Publish one message to a topic. Requires the submit key, if any."""
    topic_id: str
    message: bytes

    def __post_init__(self):
        if isinstance(self.message, str):
            object.__setattr__(self, 'message', self.message.encode("utf-8"))

    def text(self) -> str:
        return self.message.decode("utf-8")
