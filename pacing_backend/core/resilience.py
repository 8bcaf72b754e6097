"""
Retry and timeout wrapper for source reads.

Every read against an external source or the store goes through
with_retry(operation, policy) at its call site:

    rows = await with_retry(lambda: client.fetch_partners(side, day), policy)

The operation is a zero-argument callable returning a fresh awaitable, so each
attempt issues a new request. Each attempt is bounded by the policy timeout;
a timeout surfaces as OperationTimeoutError, which is itself transient and
therefore retried. Writes are never wrapped.

Defaults: 15 s per attempt, 2 retries, linear backoff of 0.5 s x attempt.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from pacing_backend.core.config import Settings
from pacing_backend.core.errors import OperationTimeoutError, TransientIOError

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Retry behaviour for one class of reads."""

    max_retries: int = 2
    backoff_seconds: float = 0.5
    timeout_seconds: Optional[float] = 15.0
    retry_on: Tuple[Type[BaseException], ...] = field(default=(TransientIOError,))

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.retry_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
            timeout_seconds=settings.request_timeout_seconds,
        )

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based failed attempt."""
        return self.backoff_seconds * (attempt + 1)


async def with_timeout(awaitable: Awaitable[T], seconds: Optional[float]) -> T:
    """
    Await with an upper bound on elapsed time.

    Raises:
        OperationTimeoutError: When the bound is exceeded. The inner task is
            cancelled.
    """
    if seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(seconds) from e


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: Optional[RetryPolicy] = None,
    label: str = "operation",
) -> T:
    """
    Run an async operation with a per-attempt timeout and linear backoff.

    Args:
        operation: Zero-argument callable producing the awaitable to run.
        policy: Retry behaviour; RetryPolicy() defaults when omitted.
        label: Name used in retry log lines.

    Returns:
        The first successful result.

    Raises:
        The last error once retries are exhausted. Errors outside
        policy.retry_on propagate immediately.
    """
    policy = policy or RetryPolicy()
    attempts = policy.max_retries + 1

    for attempt in range(attempts):
        try:
            return await with_timeout(operation(), policy.timeout_seconds)
        except policy.retry_on as e:
            if attempt >= policy.max_retries:
                logger.error(f"{label} failed after {attempts} attempts: {e}")
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{label} attempt {attempt + 1} failed: {e}. Retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or re-raises
    raise RuntimeError(f"{label} exhausted retries without a result")
