"""
reconcile.py - Bring an account's token balance to a target through the treasury

The reconciler is the one piece of real logic the scenarios share. Given an
account, a token and a target balance it:

    1. Queries the current balance (an absent entry counts as zero)
    2. Computes delta = target - current
    3. Returns immediately when delta is zero (nothing is submitted)
    4. Otherwise builds a two-leg transfer: treasury -delta, account +delta
    5. Freezes it, signs with the treasury key (and the account key for
       draw-downs), and executes it through the client
    6. Raises on any non-SUCCESS receipt, with no retry
    7. Re-queries and returns the account's balance

The treasury and its key are explicit parameters of every call. Running two
reconciliations against the same treasury concurrently is the caller's
problem: each could observe a stale balance.
"""

from __future__ import annotations
from decimal import Decimal
from enum import Enum
import logging
from typing import Any, Optional

from .core import LedgerClient
from .keys import PrivateKey
from .transactions import TransferIntent

logger = logging.getLogger(__name__)


# ============================================================================
# PURE HELPERS
# ============================================================================

def token_balance(client: LedgerClient, account_id: str, token_id: str) -> int:
    """
    Current balance of token_id held by account_id.

    An account never associated with the token reports zero rather than
    failing; only the account itself has to exist.
    """
    return client.get_account_balance(account_id).token_balance(token_id)


def reconciling_transfer(
    token_id: str,
    account_id: str,
    current: int,
    target: int,
    treasury_id: str,
) -> Optional[TransferIntent]:
    """
    Build the transfer that moves account_id from current to target.

    Returns None when the account has already converged. Otherwise the intent
    holds exactly two legs that sum to zero: the treasury gives -delta and the
    account receives +delta (a negative delta sends the surplus back).
    """
    delta = target - current
    if delta == 0:
        return None
    if account_id == treasury_id:
        raise ValueError(f"cannot reconcile the treasury {treasury_id} against itself")
    intent = TransferIntent(memo=f"reconcile {account_id} {token_id} to {target}")
    intent.add_token_transfer(token_id, treasury_id, -delta)
    intent.add_token_transfer(token_id, account_id, delta)
    return intent


# ============================================================================
# HBAR CHECKS
# ============================================================================

class HbarCheck(Enum):
    """
    How an account's hbar balance is compared against an expected amount.

    EXACT suits accounts funded with precisely the expected amount whose fees
    are paid by someone else. GREATER_THAN suits accounts funded with a margin.
    """
    EXACT = "exact"
    GREATER_THAN = "greater_than"


def hbar_satisfies(actual: Any, expected: Any, check: HbarCheck) -> bool:
    """True if the hbar balance actual meets expected under check."""
    actual = actual if isinstance(actual, Decimal) else Decimal(str(actual))
    expected = expected if isinstance(expected, Decimal) else Decimal(str(expected))
    if check is HbarCheck.EXACT:
        return actual == expected
    return actual > expected


# ============================================================================
# RECONCILER
# ============================================================================

class BalanceReconciler:
    """
    Computes and executes the minimal treasury transfer for a target balance.

    Example:
        reconciler = BalanceReconciler(client)
        final = reconciler.reconcile(
            account_id, token_id, 500,
            treasury_id=treasury.account_id,
            treasury_key=treasury.private_key,
        )
        assert final == 500
    """

    def __init__(self, client: LedgerClient):
        self.client = client

    def reconcile(
        self,
        account_id: str,
        token_id: str,
        target_balance: int,
        treasury_id: str,
        treasury_key: PrivateKey,
        account_key: Optional[PrivateKey] = None,
    ) -> int:
        """
        Bring account_id's balance of token_id to target_balance.

        Args:
            account_id: Account to adjust; must be associated with the token
            token_id: Token to adjust
            target_balance: Desired balance in the token's smallest unit
            treasury_id: Counterparty of the transfer
            treasury_key: Key authorising the treasury's debit
            account_key: Key authorising the account's debit; needed only when
                the target is below the current balance

        Returns:
            The balance observed after reconciling. Callers assert it equals
            target_balance; a concurrent mutation may make it differ.

        Raises:
            ValueError: target_balance is negative or not an int
            ReceiptStatusError: the transfer reached a non-SUCCESS status
                (Unauthorized for INVALID_SIGNATURE, NotAssociated for
                TOKEN_NOT_ASSOCIATED_TO_ACCOUNT)
        """
        if isinstance(target_balance, bool) or not isinstance(target_balance, int):
            raise ValueError(f"target_balance must be int, got {type(target_balance)}")
        if target_balance < 0:
            raise ValueError(f"target_balance cannot be negative, got {target_balance}")

        current = token_balance(self.client, account_id, token_id)
        logger.info(
            "Account %s holds %d of %s (target %d)",
            account_id, current, token_id, target_balance,
        )

        intent = reconciling_transfer(token_id, account_id, current, target_balance, treasury_id)
        if intent is None:
            return current

        tx = intent.freeze().sign(treasury_key)
        if account_key is not None:
            tx = tx.sign(account_key)

        receipt = self.client.execute(tx)
        logger.info("Reconciling transfer %s: %s", receipt.transaction_id, receipt.status)
        receipt.raise_for_status()

        final = token_balance(self.client, account_id, token_id)
        logger.info("Account %s now holds %d of %s", account_id, final, token_id)
        return final
