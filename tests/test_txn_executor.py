from __future__ import annotations

import types

import pytest

from mechain_cmd.cancellation import CancellationToken
from mechain_cmd.errors import (
    ConfirmationTimeoutError,
    ErrorKind,
    OperationCancelledError,
    TransportFailureError,
)
from mechain_cmd.txn import TransactionExecutor
from mechain_cmd.types import TransactionHandle, TransactionOutcome


def _handle(tx_hash: str = "ABC") -> TransactionHandle:
    return TransactionHandle(tx_hash=tx_hash, submitted_at=0.0)


def test_confirm_returns_outcome_once_included() -> None:
    states = iter([None, None, TransactionOutcome(tx_hash="ABC", code=0, height=12)])
    calls: list[str] = []

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        calls.append(tx_hash)
        return next(states)

    executor = TransactionExecutor(query, interval=0.001)
    outcome = executor.confirm(_handle(), timeout=5)

    assert outcome.succeeded
    assert outcome.height == 12
    assert calls == ["ABC", "ABC", "ABC"]


def test_non_zero_code_is_returned_not_raised() -> None:
    executor = TransactionExecutor(lambda tx_hash, budget: TransactionOutcome(tx_hash=tx_hash, code=5))
    outcome = executor.confirm(_handle(), timeout=5)
    assert outcome.code == 5
    assert not outcome.succeeded


def test_zero_timeout_still_queries_once() -> None:
    calls: list[str] = []

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        calls.append(tx_hash)
        return None

    executor = TransactionExecutor(query, interval=0.001)
    with pytest.raises(ConfirmationTimeoutError) as exc_info:
        executor.confirm(_handle("PENDING"), timeout=0)

    assert calls == ["PENDING"]
    assert exc_info.value.tx_hash == "PENDING"
    assert exc_info.value.kind is ErrorKind.CONFIRMATION_TIMEOUT
    assert "please check it later" in str(exc_info.value)


def test_zero_timeout_returns_already_included_outcome() -> None:
    executor = TransactionExecutor(lambda tx_hash, budget: TransactionOutcome(tx_hash=tx_hash, code=0))
    assert executor.confirm(_handle(), timeout=0).succeeded


def test_timeout_after_polling(monkeypatch) -> None:
    clock = {"now": 100.0}

    def fake_monotonic() -> float:
        return clock["now"]

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        clock["now"] += 1.0
        return None

    monkeypatch.setattr("mechain_cmd.txn.time", types.SimpleNamespace(monotonic=fake_monotonic))
    executor = TransactionExecutor(query, interval=0.0)

    with pytest.raises(ConfirmationTimeoutError):
        executor.confirm(_handle(), timeout=3)
    assert clock["now"] == 103.0


def test_transient_query_failures_are_tolerated() -> None:
    responses = iter(
        [
            TransportFailureError("connection reset"),
            TransportFailureError("connection reset"),
            TransactionOutcome(tx_hash="ABC", code=0),
        ]
    )

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        value = next(responses)
        if isinstance(value, Exception):
            raise value
        return value

    executor = TransactionExecutor(query, interval=0.001, max_query_failures=3)
    assert executor.confirm(_handle(), timeout=5).succeeded


def test_consecutive_query_failures_raise_transport_failure() -> None:
    calls: list[str] = []

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        calls.append(tx_hash)
        raise TransportFailureError("gateway down")

    executor = TransactionExecutor(query, interval=0.001, max_query_failures=3)
    with pytest.raises(TransportFailureError) as exc_info:
        executor.confirm(_handle(), timeout=5)

    assert not isinstance(exc_info.value, ConfirmationTimeoutError)
    assert len(calls) == 3


def test_cancelled_before_confirm_never_queries() -> None:
    calls: list[str] = []
    token = CancellationToken()
    token.cancel()

    executor = TransactionExecutor(lambda tx_hash, budget: calls.append(tx_hash))
    with pytest.raises(OperationCancelledError):
        executor.confirm(_handle(), timeout=5, cancel=token)
    assert calls == []


def test_cancel_during_wait_interrupts_sleep() -> None:
    token = CancellationToken()

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        token.cancel()
        return None

    executor = TransactionExecutor(query, interval=30.0)
    with pytest.raises(OperationCancelledError) as exc_info:
        executor.confirm(_handle(), timeout=60, cancel=token)
    assert exc_info.value.kind is ErrorKind.CANCELLED


def test_invalid_failure_tolerance_rejected() -> None:
    with pytest.raises(ValueError):
        TransactionExecutor(lambda tx_hash, budget: None, max_query_failures=0)


def test_failing_queries_at_the_deadline_are_transport_failures() -> None:
    calls: list[str] = []

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        calls.append(tx_hash)
        raise TransportFailureError("connection refused")

    executor = TransactionExecutor(query, interval=0.05, max_query_failures=3)
    with pytest.raises(TransportFailureError) as exc_info:
        executor.confirm(_handle("DEAD"), timeout=0)

    assert not isinstance(exc_info.value, ConfirmationTimeoutError)
    assert exc_info.value.kind is ErrorKind.TRANSPORT_FAILURE
    assert calls == ["DEAD"]


def test_recovered_query_then_pending_is_a_timeout(monkeypatch) -> None:
    responses = iter([TransportFailureError("connection reset"), None])

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        value = next(responses, None)
        if isinstance(value, Exception):
            raise value
        return value

    clock = {"now": 0.0}

    def fake_monotonic() -> float:
        clock["now"] += 0.6
        return clock["now"]

    monkeypatch.setattr("mechain_cmd.txn.time", types.SimpleNamespace(monotonic=fake_monotonic))
    executor = TransactionExecutor(query, interval=0.0)
    with pytest.raises(ConfirmationTimeoutError):
        executor.confirm(_handle(), timeout=2)


def test_query_budget_is_bounded_by_the_deadline() -> None:
    budgets: list[float] = []

    def query(tx_hash: str, budget: float):  # noqa: ANN202, ARG001
        budgets.append(budget)
        return None

    executor = TransactionExecutor(query, interval=0.001)
    with pytest.raises(ConfirmationTimeoutError):
        executor.confirm(_handle(), timeout=0.05)

    assert budgets
    assert all(b <= 0.5 for b in budgets)
