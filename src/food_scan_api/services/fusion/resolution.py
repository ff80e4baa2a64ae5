"""
Ordered fallback resolution.

A resolution chain is a list of named strategies tried in order. Each
strategy returns Resolved or Unresolved instead of raising; the driver
stops at the first Resolved and collects warnings along the way.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, TypeVar, Union

logger = logging.getLogger(__name__)

C = TypeVar("C")
T = TypeVar("T")


@dataclass(frozen=True)
class Resolved(Generic[T]):
    value: T
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class Unresolved:
    reason: str
    warning: str | None = None


Outcome = Union[Resolved[T], Unresolved]


@dataclass(frozen=True)
class Strategy(Generic[C, T]):
    """A named resolution step."""

    name: str
    run: Callable[[C], Awaitable[Outcome[T]]]


@dataclass
class Resolution(Generic[T]):
    """Result of a resolution chain."""

    strategy: str
    value: T
    warnings: list[str] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)


class ResolutionExhausted(Exception):
    """Every strategy in the chain returned Unresolved."""

    def __init__(self, failures: list[tuple[str, str]], warnings: list[str]):
        self.failures = failures
        self.warnings = warnings
        summary = "; ".join(f"{name}: {reason}" for name, reason in failures)
        super().__init__(f"All strategies failed ({summary})")


async def resolve_first(strategies: list[Strategy[C, T]], context: C) -> Resolution[T]:
    """
    Run strategies in order until one resolves.

    Args:
        strategies: Ordered chain
        context: Value passed to every strategy

    Returns:
        Resolution naming the winning strategy, with warnings from failed
        strategies followed by the winner's own warnings

    Raises:
        ResolutionExhausted: If no strategy resolved
    """
    warnings: list[str] = []
    failures: list[tuple[str, str]] = []

    for strategy in strategies:
        outcome = await strategy.run(context)
        if isinstance(outcome, Resolved):
            logger.info(f"Resolved by {strategy.name}")
            warnings.extend(outcome.warnings)
            return Resolution(
                strategy=strategy.name,
                value=outcome.value,
                warnings=warnings,
                failures=failures,
            )

        logger.info(f"{strategy.name} unresolved: {outcome.reason}")
        failures.append((strategy.name, outcome.reason))
        if outcome.warning:
            warnings.append(outcome.warning)

    raise ResolutionExhausted(failures, warnings)
