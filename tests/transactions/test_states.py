from __future__ import annotations

import pytest

from revamp_client.errors import TransactionFailedError
from revamp_client.transactions import OperationKind, TransactionAttempt, TxState


def test_new_attempt_is_idle():
    attempt = TransactionAttempt(OperationKind.CLAIM)

    assert attempt.state is TxState.IDLE
    assert attempt.history == [TxState.IDLE]
    assert attempt.hash is None
    assert not attempt.is_terminal


def test_terminal_states_are_final():
    attempt = TransactionAttempt(OperationKind.CLAIM)
    attempt.advance(TxState.AWAITING_PRIMARY_SUBMISSION)
    attempt.advance(TxState.FAILED)

    assert attempt.is_terminal
    with pytest.raises(RuntimeError):
        attempt.advance(TxState.AWAITING_CONFIRMATION)
    with pytest.raises(RuntimeError):
        attempt.advance(TxState.FAILED)


def test_cannot_skip_to_confirmation():
    attempt = TransactionAttempt(OperationKind.DEPOSIT)

    with pytest.raises(RuntimeError):
        attempt.advance(TxState.AWAITING_CONFIRMATION)
    assert attempt.history == [TxState.IDLE]


def test_raise_for_failure_only_when_failed():
    attempt = TransactionAttempt(OperationKind.BUY_SHARES)
    attempt.raise_for_failure()

    attempt.advance(TxState.AWAITING_PRIMARY_SUBMISSION)
    attempt.error = "submission rejected: denied"
    attempt.advance(TxState.FAILED)

    with pytest.raises(TransactionFailedError) as excinfo:
        attempt.raise_for_failure()
    assert excinfo.value.operation == "buyShares"
    assert excinfo.value.reason == "submission rejected: denied"
