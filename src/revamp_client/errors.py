"""Exception hierarchy for protocol interaction."""

from __future__ import annotations


class RevampError(Exception):
    """Base class for all revamp-client errors."""


class WriteDisabledError(RevampError):
    """Raised when a write action is requested while writes are not allowed."""


class UnsupportedNetworkError(WriteDisabledError):
    """The active chain has no deployed protocol contract."""

    def __init__(self, chain_id: int | None):
        self.chain_id = chain_id
        super().__init__(f"Network with chain id {chain_id} is not supported")


class NetworkMismatchError(WriteDisabledError):
    """The selected network differs from the chain reported by the wallet."""

    def __init__(self, selected_chain_id: int | None, active_chain_id: int | None):
        self.selected_chain_id = selected_chain_id
        self.active_chain_id = active_chain_id
        super().__init__(
            f"Selected network (chain id {selected_chain_id}) does not match "
            f"wallet network (chain id {active_chain_id}); reload required"
        )


class WalletNotConnectedError(WriteDisabledError):
    """No account is available from the wallet provider."""


class InvalidOperationError(RevampError):
    """Raised when a requested operation fails validation before submission."""


class TransactionRejectedError(RevampError):
    """The wallet or node refused to broadcast a transaction."""


class TransactionRevertedError(RevampError):
    """A broadcast transaction was mined with a failure status."""

    def __init__(self, tx_hash: str, message: str | None = None):
        self.tx_hash = tx_hash
        super().__init__(message or f"Transaction {tx_hash} reverted")


class TransactionFailedError(RevampError):
    """A transaction attempt ended in the failed state."""

    def __init__(self, operation: str, reason: str, tx_hash: str | None = None):
        self.operation = operation
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(f"{operation} failed: {reason}")
