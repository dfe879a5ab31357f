"""Wallet provider interface.

The orchestrator never reaches for a global wallet object. A provider handle
is injected instead, which is what lets tests substitute doubles.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, TypedDict

from ..logger import get_logger

logger = get_logger(__name__)

CHAIN_CHANGED = "chainChanged"
ACCOUNTS_CHANGED = "accountsChanged"

EventHandler = Callable[[Any], None]


class TxRequest(TypedDict, total=False):
    """Unsigned transaction fields supplied by the orchestrator."""

    to: str
    data: str
    value: int


class SubmittedTransaction(ABC):
    """Handle on a broadcast transaction."""

    @property
    @abstractmethod
    def hash(self) -> str:
        """Transaction hash as a 0x-prefixed hex string."""
        ...

    @abstractmethod
    async def wait(self, confirmations: int = 1) -> dict[str, Any]:
        """Block until the transaction has ``confirmations`` confirmations.

        Returns:
            The transaction receipt.

        Raises:
            TransactionRevertedError: If the receipt carries a failure status.
        """
        ...


class BaseWalletProvider(ABC):
    """Account/chain discovery, signed submission, and change events."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Return the chain id the wallet is connected to."""
        ...

    @abstractmethod
    async def get_accounts(self) -> list[str]:
        """Return connected accounts, first one active."""
        ...

    @abstractmethod
    async def send_transaction(self, tx: TxRequest) -> SubmittedTransaction:
        """Sign and broadcast ``tx`` from the active account.

        Raises:
            TransactionRejectedError: If the wallet or node refuses it.
        """
        ...

    def subscribe(self, event: str, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` for ``event``; returns an unsubscribe callable."""
        handlers = self._handlers.setdefault(event, [])
        handlers.append(handler)

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def _emit(self, event: str, payload: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                handler(payload)
            except Exception as e:
                logger.error("Handler for %s failed: %s", event, e)
