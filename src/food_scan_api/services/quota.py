"""In-process quota tracking for rate-limited external providers.

Counters live for the lifetime of the process and reset when their
window elapses. The window arithmetic is kept in pure functions so it can
be tested without a clock.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class QuotaPeriod(str, Enum):
    """Length of a quota window."""

    MINUTE = "minute"
    MONTH = "month"


class QuotaExceeded(Exception):
    """Raised when a gated call is attempted with no quota left."""

    def __init__(self, provider: str, limit: int, reset_date: datetime):
        self.provider = provider
        self.limit = limit
        self.reset_date = reset_date
        super().__init__(
            f"{provider} quota exhausted ({limit} calls); resets at {reset_date.isoformat()}"
        )


@dataclass(frozen=True)
class QuotaLimit:
    limit: int
    period: QuotaPeriod


@dataclass(frozen=True)
class QuotaState:
    """Counter for one provider within the current window."""

    count: int
    window_reset: datetime


@dataclass(frozen=True)
class QuotaCheck:
    allowed: bool
    remaining: int
    reset_date: datetime


def next_window_reset(now: datetime, period: QuotaPeriod) -> datetime:
    """
    Compute when a window opened at `now` ends.

    Monthly windows end at the first instant of the next calendar month;
    minute windows end at the start of the next minute.
    """
    if period == QuotaPeriod.MINUTE:
        return now.replace(second=0, microsecond=0) + timedelta(minutes=1)
    if now.month == 12:
        return now.replace(year=now.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return now.replace(month=now.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0)


def evaluate_quota(
    now: datetime,
    state: QuotaState,
    limit: int,
    period: QuotaPeriod,
) -> tuple[QuotaState, QuotaCheck]:
    """
    Evaluate a quota counter at a point in time.

    Args:
        now: Current time
        state: Stored counter
        limit: Maximum calls per window
        period: Window length used when the window rolls over

    Returns:
        Tuple of (possibly reset state, check result)
    """
    if now >= state.window_reset:
        state = QuotaState(count=0, window_reset=next_window_reset(now, period))

    remaining = max(0, limit - state.count)
    return state, QuotaCheck(
        allowed=remaining > 0,
        remaining=remaining,
        reset_date=state.window_reset,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotaTracker:
    """
    Per-provider call counters with windowed resets.

    Usage:
        tracker = QuotaTracker({"clarifai": QuotaLimit(1000, QuotaPeriod.MONTH)})

        check = tracker.check("clarifai")
        if check.allowed:
            ...call the provider...
            tracker.increment("clarifai")
    """

    def __init__(
        self,
        limits: dict[str, QuotaLimit],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._limits = dict(limits)
        self._clock = clock
        self._lock = threading.Lock()
        now = clock()
        self._states = {
            name: QuotaState(count=0, window_reset=next_window_reset(now, limit.period))
            for name, limit in self._limits.items()
        }

    @property
    def providers(self) -> list[str]:
        return list(self._limits)

    def _evaluate(self, provider: str) -> QuotaCheck:
        if provider not in self._limits:
            raise KeyError(f"No quota configured for provider: {provider}")
        limit = self._limits[provider]
        state, check = evaluate_quota(self._clock(), self._states[provider], limit.limit, limit.period)
        self._states[provider] = state
        return check

    def check(self, provider: str) -> QuotaCheck:
        """Check whether another call to `provider` is allowed."""
        with self._lock:
            return self._evaluate(provider)

    def increment(self, provider: str) -> None:
        """Record one call to `provider`."""
        with self._lock:
            self._evaluate(provider)
            state = self._states[provider]
            self._states[provider] = QuotaState(count=state.count + 1, window_reset=state.window_reset)

    def acquire(self, provider: str) -> None:
        """
        Check and record a call in one step.

        Raises:
            QuotaExceeded: If no quota remains in the current window
        """
        with self._lock:
            check = self._evaluate(provider)
            if not check.allowed:
                raise QuotaExceeded(provider, self._limits[provider].limit, check.reset_date)
            state = self._states[provider]
            self._states[provider] = QuotaState(count=state.count + 1, window_reset=state.window_reset)

    def status(self) -> dict[str, dict]:
        """Snapshot of every tracked provider."""
        with self._lock:
            snapshot = {}
            for name, limit in self._limits.items():
                check = self._evaluate(name)
                snapshot[name] = {
                    "used": self._states[name].count,
                    "limit": limit.limit,
                    "period": limit.period.value,
                    "remaining": check.remaining,
                    "reset_date": check.reset_date.isoformat(),
                    "allowed": check.allowed,
                }
            return snapshot

    def reset(self) -> None:
        """Zero all counters and start fresh windows."""
        with self._lock:
            now = self._clock()
            for name, limit in self._limits.items():
                self._states[name] = QuotaState(count=0, window_reset=next_window_reset(now, limit.period))
        logger.info("Quota counters reset")
