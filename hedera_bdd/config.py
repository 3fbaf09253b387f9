"""
Configuration for the behaviour suite.

This module provides:
- Settings read from environment variables (prefix HEDERA_BDD_) with defaults
- The account roster: pre-funded accounts loaded from a YAML file, or
  generated when no file is configured
- Logging setup for test runs
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
import logging
import os
from pathlib import Path
from typing import Any, List, Mapping, Optional

import yaml

from .accounts import Account
from .keys import PrivateKey
from .reconcile import HbarCheck

logger = logging.getLogger(__name__)

ENV_PREFIX = "HEDERA_BDD_"

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


# =============================================================================
# Account roster
# =============================================================================

@dataclass(frozen=True, slots=True)
class RosterEntry:
    """
    A pre-funded account from the roster.

    hbar is the balance the account starts with on the in-memory network.
    """
    account_id: str
    private_key: PrivateKey
    hbar: Decimal = Decimal("1000")

    @property
    def account(self) -> Account:
        return Account(self.account_id, self.private_key)


def load_roster(path: Path) -> List[RosterEntry]:
    """
    Load roster entries from YAML.

    Expected layout:

        accounts:
          - id: "0.0.1001"
            private_key: "302e020100300506032b657004220420..."
            hbar: 1000

    Raises:
        FileNotFoundError: If path does not exist
        ValueError: If the file is not a list of id/private_key entries
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    raw_entries = data.get("accounts") if isinstance(data, dict) else None
    if not isinstance(raw_entries, list):
        raise ValueError(f"{path}: expected a top-level 'accounts' list")

    entries = []
    for index, raw in enumerate(raw_entries):
        if not isinstance(raw, dict) or "id" not in raw or "private_key" not in raw:
            raise ValueError(f"{path}: account #{index} needs 'id' and 'private_key'")
        entries.append(RosterEntry(
            account_id=str(raw["id"]),
            private_key=PrivateKey.from_string(str(raw["private_key"])),
            hbar=Decimal(str(raw.get("hbar", "1000"))),
        ))
    logger.debug("Loaded %d roster accounts from %s", len(entries), path)
    return entries


def generate_roster(count: int, hbar: Any = 1000, first_num: int = 2) -> List[RosterEntry]:
    """Fresh roster of count accounts numbered 0.0.{first_num} upwards."""
    return [
        RosterEntry(f"0.0.{first_num + i}", PrivateKey.generate(), Decimal(str(hbar)))
        for i in range(count)
    ]


# =============================================================================
# Settings
# =============================================================================

def _get_env(key: str, default: Any = None, environ: Optional[Mapping[str, str]] = None) -> Any:
    """Get environment variable with prefix."""
    environ = os.environ if environ is None else environ
    return environ.get(f"{ENV_PREFIX}{key}", default)


def _get_env_bool(key: str, default: bool, environ: Optional[Mapping[str, str]] = None) -> bool:
    value = _get_env(key, None, environ)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """
    Suite configuration.

    Environment variables (all optional):
        HEDERA_BDD_NETWORK             network name (default "testnet")
        HEDERA_BDD_ACCOUNTS_FILE       YAML roster; generated accounts if unset
        HEDERA_BDD_ROSTER_SIZE         generated roster size (default 4)
        HEDERA_BDD_ROSTER_HBAR         generated account balance (default 1000)
        HEDERA_BDD_TRANSACTION_FEE     flat fee in tinybars (default 100000)
        HEDERA_BDD_TOKEN_NAME / _TOKEN_SYMBOL / _TOKEN_DECIMALS
        HEDERA_BDD_STEP_TIMEOUT        seconds (default 100)
        HEDERA_BDD_FUNDED_HBAR_CHECK   "greater_than" or "exact"
        HEDERA_BDD_FRESH_HBAR_CHECK    "exact" or "greater_than"
        HEDERA_BDD_LOG_LEVEL           logging level name (default WARNING)
        HEDERA_BDD_VERBOSE             print a box per transaction
    """
    network_name: str = "testnet"
    accounts_file: Optional[Path] = None
    roster_size: int = 4
    roster_hbar: Decimal = Decimal("1000")
    transaction_fee: int = 100_000
    token_name: str = "Test Token"
    token_symbol: str = "HTT"
    token_decimals: int = 2
    step_timeout: float = 100.0
    # Accounts funded with a margin (2x) and paying their own fees
    funded_account_hbar_check: HbarCheck = HbarCheck.GREATER_THAN
    # Brand-new accounts funded with exactly the expected amount
    fresh_account_hbar_check: HbarCheck = HbarCheck.EXACT
    log_level: str = "WARNING"
    verbose: bool = False

    def __post_init__(self):
        if self.roster_size < 0:
            raise ValueError(f"roster_size cannot be negative, got {self.roster_size}")
        if self.transaction_fee < 0:
            raise ValueError(f"transaction_fee cannot be negative, got {self.transaction_fee}")
        if self.step_timeout <= 0:
            raise ValueError(f"step_timeout must be positive, got {self.step_timeout}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Settings:
        """Build settings from HEDERA_BDD_* variables; unset ones keep their defaults."""
        defaults = cls()
        accounts_file = _get_env("ACCOUNTS_FILE", None, environ)
        return cls(
            network_name=_get_env("NETWORK", defaults.network_name, environ),
            accounts_file=Path(accounts_file) if accounts_file else None,
            roster_size=int(_get_env("ROSTER_SIZE", defaults.roster_size, environ)),
            roster_hbar=Decimal(str(_get_env("ROSTER_HBAR", defaults.roster_hbar, environ))),
            transaction_fee=int(_get_env("TRANSACTION_FEE", defaults.transaction_fee, environ)),
            token_name=_get_env("TOKEN_NAME", defaults.token_name, environ),
            token_symbol=_get_env("TOKEN_SYMBOL", defaults.token_symbol, environ),
            token_decimals=int(_get_env("TOKEN_DECIMALS", defaults.token_decimals, environ)),
            step_timeout=float(_get_env("STEP_TIMEOUT", defaults.step_timeout, environ)),
            funded_account_hbar_check=HbarCheck(
                _get_env("FUNDED_HBAR_CHECK", defaults.funded_account_hbar_check.value, environ).lower()
            ),
            fresh_account_hbar_check=HbarCheck(
                _get_env("FRESH_HBAR_CHECK", defaults.fresh_account_hbar_check.value, environ).lower()
            ),
            log_level=_get_env("LOG_LEVEL", defaults.log_level, environ).upper(),
            verbose=_get_env_bool("VERBOSE", defaults.verbose, environ),
        )

    def roster(self) -> List[RosterEntry]:
        if self.accounts_file is not None:
            return load_roster(self.accounts_file)
        return generate_roster(self.roster_size, self.roster_hbar)


def configure_logging(level: Any = "WARNING") -> None:
    """Console logging for a test run. Safe to call more than once."""
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"unknown log level {name!r}")
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("hedera_bdd").setLevel(level)
