"""Tests for the retry/timeout policy wrapper."""

import asyncio

import httpx
import pytest

from food_scan_api.core.retry import ProviderTimeoutError, RetryPolicy, call_with_policy


class FakeSleep:
    """Records requested delays instead of sleeping."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def flaky(failures: list[Exception], result: str = "ok"):
    """Operation that raises the given errors in order, then succeeds."""
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if failures:
            raise failures.pop(0)
        return result

    return operation, calls


class TestCallWithPolicy:
    """Tests for call_with_policy."""

    @pytest.mark.asyncio
    async def test_retries_transport_errors_with_linear_backoff(self):
        sleep = FakeSleep()
        operation, calls = flaky([httpx.ConnectError("reset"), httpx.ConnectError("reset")])

        result = await call_with_policy(operation, RetryPolicy(max_retries=2, backoff_seconds=0.5), sleep=sleep)

        assert result == "ok"
        assert calls["count"] == 3
        assert sleep.delays == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_non_retryable_error_raised_immediately(self):
        sleep = FakeSleep()
        operation, calls = flaky([ValueError("bad request")])

        with pytest.raises(ValueError):
            await call_with_policy(operation, RetryPolicy(max_retries=3), sleep=sleep)

        assert calls["count"] == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        sleep = FakeSleep()
        operation, calls = flaky([httpx.ReadError("x") for _ in range(5)])

        with pytest.raises(httpx.ReadError):
            await call_with_policy(operation, RetryPolicy(max_retries=1), sleep=sleep)

        assert calls["count"] == 2
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_timeout_becomes_provider_timeout(self):
        sleep = FakeSleep()

        async def slow():
            await asyncio.sleep(1)

        policy = RetryPolicy(max_retries=1, timeout_seconds=0.01)
        with pytest.raises(ProviderTimeoutError) as exc_info:
            await call_with_policy(slow, policy, sleep=sleep)

        assert exc_info.value.timeout_seconds == 0.01
        assert len(sleep.delays) == 1

    @pytest.mark.asyncio
    async def test_custom_retry_predicate(self):
        sleep = FakeSleep()
        operation, calls = flaky([KeyError("transient")])
        policy = RetryPolicy(max_retries=1, is_retryable=lambda e: isinstance(e, KeyError))

        assert await call_with_policy(operation, policy, sleep=sleep) == "ok"
        assert calls["count"] == 2

    def test_with_retries_keeps_other_settings(self):
        policy = RetryPolicy(max_retries=2, backoff_seconds=0.25, timeout_seconds=3)

        single = policy.with_retries(0)

        assert single.max_retries == 0
        assert single.backoff_seconds == 0.25
        assert single.timeout_seconds == 3
