"""
call_with_retry: only concurrency conflicts are retried.
"""

import pytest

from inventory_kernel.config import RetryPolicy
from inventory_kernel.exceptions import (
    ConcurrencyConflictError,
    InsufficientStockError,
)
from inventory_kernel.services.retry_service import call_with_retry


class FlakyOperation:
    """Fails with a conflict ``failures`` times, then returns ``result``."""

    def __init__(self, failures, result="done"):
        self.failures = failures
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConcurrencyConflictError("StockLevel", "p@l")
        return self.result


def test_succeeds_first_time_without_sleeping():
    delays = []
    op = FlakyOperation(failures=0)
    assert call_with_retry(op, sleep=delays.append) == "done"
    assert op.calls == 1
    assert delays == []


def test_retries_conflict_with_backoff():
    delays = []
    op = FlakyOperation(failures=2)
    policy = RetryPolicy(max_attempts=3, backoff_seconds=0.1, backoff_multiplier=2.0)
    assert call_with_retry(op, policy, sleep=delays.append) == "done"
    assert op.calls == 3
    assert delays == pytest.approx([0.1, 0.2])


def test_gives_up_after_max_attempts(captured_logs):
    op = FlakyOperation(failures=10)
    with pytest.raises(ConcurrencyConflictError):
        call_with_retry(op, RetryPolicy(max_attempts=2), sleep=lambda _: None)
    assert op.calls == 2
    assert any(r["message"] == "concurrency_retry_exhausted" for r in captured_logs())


def test_other_errors_are_not_retried():
    calls = []

    def op():
        calls.append(1)
        raise InsufficientStockError("p", "l", 0, -1, "issue")

    with pytest.raises(InsufficientStockError):
        call_with_retry(op, sleep=lambda _: None)
    assert len(calls) == 1
