"""
Retry of operations that lost a concurrency race.

Responsibility:
    Re-runs a whole unit of work when it failed with
    ``ConcurrencyConflictError``.  Every document service operation rolls
    back completely before raising, so running it again from the start is
    safe.

Architecture position:
    Kernel > Services -- imperative shell helper.  Used by callers of the
    document services (API handlers, jobs), never inside a transaction.

Invariants enforced:
    - Only ConcurrencyConflictError is retried.  Validation, stock and
      workflow errors propagate on the first attempt.
    - At most ``RetryPolicy.max_attempts`` attempts.

Failure modes:
    - The last ConcurrencyConflictError propagates when attempts run out.

Usage:
    from inventory_kernel.services.retry_service import call_with_retry

    grn = call_with_retry(lambda: grn_service.post(grn_id, actor_id))
"""

import time
from collections.abc import Callable
from typing import TypeVar

from inventory_kernel.config import RetryPolicy
from inventory_kernel.exceptions import ConcurrencyConflictError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.retry")

T = TypeVar("T")


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` until it succeeds or ``policy.max_attempts`` is reached.

    Args:
        fn: Zero-argument callable that performs one complete unit of work.
        policy: Attempts and backoff; defaults to ``RetryPolicy()``.
        sleep: Injected for tests.

    Raises:
        ConcurrencyConflictError: every attempt lost its race.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return fn()
        except ConcurrencyConflictError as exc:
            if attempt >= policy.max_attempts:
                logger.warning(
                    "concurrency_retry_exhausted",
                    extra={
                        "attempts": attempt,
                        "entity_type": exc.entity_type,
                        "entity_ref": exc.entity_ref,
                    },
                )
                raise
            delay = policy.delay_for(attempt)
            logger.info(
                "concurrency_retry",
                extra={
                    "attempt": attempt,
                    "delay_seconds": delay,
                    "entity_type": exc.entity_type,
                    "entity_ref": exc.entity_ref,
                },
            )
            sleep(delay)
            attempt += 1
