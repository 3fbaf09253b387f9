"""
keys.py - ED25519 keys and threshold key lists

Signing and verification are delegated to PyNaCl. This module only adds the
ledger's conventions on top:
- PrivateKey / PublicKey serialise as DER-encoded hex strings (raw hex is
  also accepted when parsing)
- KeyList groups keys under an M-of-N threshold; a KeyList without a
  threshold requires every member

A Key (PublicKey or KeyList) is "satisfied" by a set of public keys whose
signatures have already been verified.
"""

from __future__ import annotations
from typing import AbstractSet, Iterable, Optional, Tuple, Union

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey


# DER prefixes for ED25519 keys (PKCS#8 private, SubjectPublicKeyInfo public)
_PRIVATE_DER_PREFIX = "302e020100300506032b657004220420"
_PUBLIC_DER_PREFIX = "302a300506032b6570032100"

_KEY_HEX_LENGTH = 64


def _strip_hex(text: str, der_prefix: str) -> str:
    value = text.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    if value.startswith(der_prefix):
        value = value[len(der_prefix):]
    if len(value) != _KEY_HEX_LENGTH:
        raise ValueError(f"expected a 32-byte ED25519 key, got {len(value) // 2} bytes")
    try:
        bytes.fromhex(value)
    except ValueError as exc:
        raise ValueError(f"key is not valid hex: {text!r}") from exc
    return value


class PublicKey:
    """ED25519 verification key."""

    __slots__ = ("_verify_key",)

    def __init__(self, verify_key: VerifyKey):
        self._verify_key = verify_key

    @classmethod
    def from_bytes(cls, data: bytes) -> PublicKey:
        return cls(VerifyKey(data))

    @classmethod
    def from_string(cls, text: str) -> PublicKey:
        """Parse a DER or raw hex encoded public key."""
        return cls.from_bytes(bytes.fromhex(_strip_hex(text, _PUBLIC_DER_PREFIX)))

    def to_bytes(self) -> bytes:
        return self._verify_key.encode()

    def to_string_raw(self) -> str:
        return self.to_bytes().hex()

    def to_string(self) -> str:
        """DER-encoded hex, the form used in account rosters."""
        return _PUBLIC_DER_PREFIX + self.to_string_raw()

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Return True if signature is this key's signature over message."""
        try:
            self._verify_key.verify(message, signature)
        except (BadSignatureError, ValueError):
            return False
        return True

    def is_satisfied_by(self, signers: AbstractSet[PublicKey]) -> bool:
        return self in signers

    def public_keys(self) -> Tuple[PublicKey, ...]:
        return (self,)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"PublicKey({self.to_string_raw()[:12]}...)"


class PrivateKey:
    """
    ED25519 signing key.

    Example:
        key = PrivateKey.generate()
        restored = PrivateKey.from_string(key.to_string())
        assert restored.public_key == key.public_key
    """

    __slots__ = ("_signing_key",)

    def __init__(self, signing_key: SigningKey):
        self._signing_key = signing_key

    @classmethod
    def generate(cls) -> PrivateKey:
        return cls(SigningKey.generate())

    @classmethod
    def from_bytes(cls, seed: bytes) -> PrivateKey:
        return cls(SigningKey(seed))

    @classmethod
    def from_string(cls, text: str) -> PrivateKey:
        """Parse a DER (302e...) or raw 64-character hex private key."""
        return cls.from_bytes(bytes.fromhex(_strip_hex(text, _PRIVATE_DER_PREFIX)))

    @property
    def public_key(self) -> PublicKey:
        return PublicKey(self._signing_key.verify_key)

    def sign(self, message: bytes) -> bytes:
        """Return the detached 64-byte signature over message."""
        return self._signing_key.sign(message).signature

    def to_bytes(self) -> bytes:
        return self._signing_key.encode()

    def to_string_raw(self) -> str:
        return self.to_bytes().hex()

    def to_string(self) -> str:
        """DER-encoded hex, the form used in account rosters."""
        return _PRIVATE_DER_PREFIX + self.to_string_raw()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        # Never render key material
        return f"PrivateKey(public={self.public_key.to_string_raw()[:12]}...)"


class KeyList:
    """
    An ordered list of keys with an optional M-of-N threshold.

    Without a threshold every member must be satisfied. Members may themselves
    be KeyLists.
    """

    __slots__ = ("keys", "threshold")

    def __init__(self, keys: Iterable['Key'], threshold: Optional[int] = None):
        members = tuple(keys)
        if not members:
            raise ValueError("KeyList requires at least one key")
        if threshold is not None and not 1 <= threshold <= len(members):
            raise ValueError(
                f"threshold must be between 1 and {len(members)}, got {threshold}"
            )
        self.keys: Tuple[Key, ...] = members
        self.threshold = threshold

    @property
    def required(self) -> int:
        return self.threshold if self.threshold is not None else len(self.keys)

    def is_satisfied_by(self, signers: AbstractSet[PublicKey]) -> bool:
        satisfied = sum(1 for key in self.keys if key.is_satisfied_by(signers))
        return satisfied >= self.required

    def public_keys(self) -> Tuple[PublicKey, ...]:
        """All leaf public keys, depth first."""
        return tuple(pk for key in self.keys for pk in key.public_keys())

    def to_string(self) -> str:
        members = ",".join(key.to_string() for key in self.keys)
        return f"{self.required}-of-{len(self.keys)}[{members}]"

    def __len__(self) -> int:
        return len(self.keys)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyList):
            return NotImplemented
        return self.keys == other.keys and self.required == other.required

    def __hash__(self) -> int:
        return hash((self.keys, self.required))

    def __repr__(self) -> str:
        return f"KeyList({self.required} of {len(self.keys)})"


Key = Union[PublicKey, KeyList]


def as_public_key(key: Union[PrivateKey, PublicKey, KeyList]) -> Key:
    """Accept a private key where a public key is expected, as SDK builders do."""
    if isinstance(key, PrivateKey):
        return key.public_key
    return key
