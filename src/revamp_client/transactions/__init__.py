from __future__ import annotations

from .builder import PlannedTransaction, TokenLeg
from .orchestrator import TransactionOrchestrator
from .states import OperationKind, TransactionAttempt, TxState

__all__ = [
    "OperationKind",
    "PlannedTransaction",
    "TokenLeg",
    "TransactionAttempt",
    "TransactionOrchestrator",
    "TxState",
]
