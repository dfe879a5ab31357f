from __future__ import annotations

from .base import (
    ACCOUNTS_CHANGED,
    CHAIN_CHANGED,
    BaseWalletProvider,
    SubmittedTransaction,
    TxRequest,
)
from .local import LocalWalletProvider

__all__ = [
    "ACCOUNTS_CHANGED",
    "CHAIN_CHANGED",
    "BaseWalletProvider",
    "LocalWalletProvider",
    "SubmittedTransaction",
    "TxRequest",
]
