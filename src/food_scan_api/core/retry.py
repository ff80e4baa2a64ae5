"""
Retry and timeout policy for outbound provider calls.

A RetryPolicy describes how many times to retry, the linear backoff
schedule, the per-attempt timeout and which errors may be retried.
call_with_policy applies a policy to any zero-argument coroutine factory
by driving it with tenacity.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderTimeoutError(Exception):
    """A single attempt exceeded the policy timeout."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Provider call timed out after {timeout_seconds:.1f}s")


def default_is_retryable(exc: BaseException) -> bool:
    """Retry timeouts and transport-level failures only."""
    if isinstance(exc, (ProviderTimeoutError, httpx.TransportError)):
        return True
    return bool(getattr(exc, "retryable", False))


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry/timeout policy for one class of provider calls.

    Attributes:
        max_retries: Retries after the first attempt (total attempts = max_retries + 1)
        backoff_seconds: Linear backoff unit; retry n waits backoff_seconds * n
        timeout_seconds: Per-attempt timeout
        is_retryable: Predicate deciding whether an error may be retried
    """

    max_retries: int = 2
    backoff_seconds: float = 0.5
    timeout_seconds: float = 15.0
    is_retryable: Callable[[BaseException], bool] = field(default=default_is_retryable)

    def with_retries(self, max_retries: int) -> "RetryPolicy":
        return RetryPolicy(
            max_retries=max_retries,
            backoff_seconds=self.backoff_seconds,
            timeout_seconds=self.timeout_seconds,
            is_retryable=self.is_retryable,
        )


def _log_before_sleep(label: str, policy: RetryPolicy) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.info(
            f"{label} failed ({error}); retry {retry_state.attempt_number}/{policy.max_retries} in {delay:.2f}s"
        )

    return log


async def call_with_policy(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "provider call",
) -> T:
    """
    Run an async operation under a retry/timeout policy.

    Args:
        operation: Factory returning a fresh awaitable per attempt
        policy: Retry policy to apply
        sleep: Sleep function (injectable for tests)
        label: Name used in log messages

    Returns:
        The operation's result

    Raises:
        ProviderTimeoutError: If the final attempt timed out
        Exception: The last error raised by the operation, or the first
            non-retryable one
    """

    async def attempt() -> T:
        try:
            return await asyncio.wait_for(operation(), timeout=policy.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(policy.timeout_seconds) from e

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait_incrementing(start=policy.backoff_seconds, increment=policy.backoff_seconds),
        retry=retry_if_exception(policy.is_retryable),
        sleep=sleep,
        before_sleep=_log_before_sleep(label, policy),
        reraise=True,
    )
    try:
        return await retrying(attempt)
    except Exception as e:
        logger.warning(f"{label} failed: {e}")
        raise
