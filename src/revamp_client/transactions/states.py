"""Transaction attempt lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from ..errors import TransactionFailedError


class TxState(str, Enum):
    IDLE = "idle"
    CHECKING_ALLOWANCE = "checking_allowance"
    AWAITING_APPROVAL = "awaiting_approval"
    AWAITING_PRIMARY_SUBMISSION = "awaiting_primary_submission"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({TxState.CONFIRMED, TxState.FAILED})

ALLOWED_TRANSITIONS: dict[TxState, frozenset[TxState]] = {
    TxState.IDLE: frozenset(
        {TxState.CHECKING_ALLOWANCE, TxState.AWAITING_PRIMARY_SUBMISSION}
    ),
    TxState.CHECKING_ALLOWANCE: frozenset(
        {
            TxState.AWAITING_APPROVAL,
            TxState.AWAITING_PRIMARY_SUBMISSION,
            TxState.FAILED,
        }
    ),
    TxState.AWAITING_APPROVAL: frozenset(
        {TxState.AWAITING_PRIMARY_SUBMISSION, TxState.FAILED}
    ),
    TxState.AWAITING_PRIMARY_SUBMISSION: frozenset(
        {TxState.AWAITING_CONFIRMATION, TxState.FAILED}
    ),
    TxState.AWAITING_CONFIRMATION: frozenset({TxState.CONFIRMED, TxState.FAILED}),
    TxState.CONFIRMED: frozenset(),
    TxState.FAILED: frozenset(),
}


class OperationKind(str, Enum):
    APPROVE = "approve"
    LIST_ASSET = "listNewAsset"
    DELIST_ASSET = "delistAsset"
    DEPOSIT = "deposit"
    REINVEST = "reinvest"
    CLAIM = "claim"
    BUY_SHARES = "buyShares"
    CLAIM_REWARDS = "claimRewards"
    REINVEST_REWARDS = "reinvestRewards"


@dataclass
class TransactionAttempt:
    """One user-initiated write and the states it went through.

    ``hash`` is only set once the primary transaction has been broadcast.
    """

    operation: OperationKind
    state: TxState = TxState.IDLE
    history: list[TxState] = field(default_factory=lambda: [TxState.IDLE])
    hash: Optional[str] = None
    approval_hash: Optional[str] = None
    error: Optional[str] = None
    receipt: Optional[dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def succeeded(self) -> bool:
        return self.state is TxState.CONFIRMED

    def advance(self, state: TxState) -> None:
        if state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal transition {self.state.value} -> {state.value} "
                f"for {self.operation.value}"
            )
        self.state = state
        self.history.append(state)

    def raise_for_failure(self) -> None:
        """Raise TransactionFailedError if this attempt ended in FAILED."""
        if self.state is TxState.FAILED:
            raise TransactionFailedError(
                self.operation.value, self.error or "unknown error", self.hash
            )
