"""
Provider fallback cascade.

A cascade is an ordered list of providers for one kind of data. Each
attempt is bounded by the provider's own timeout; the first result that
passes the validity check wins and later providers are never started.
When every attempt fails the fallback (usually a deterministic
simulation) supplies the answer, so market-data callers never see a
hard failure.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar, Union

from reading_room.core.exceptions import AllProvidersFailedError, ProviderTimeoutError
from reading_room.core.logging import get_logger

logger = get_logger("fetch.cascade")

T = TypeVar("T")

FALLBACK_SOURCE = "fallback"


@dataclass
class Provider(Generic[T]):
    """A named, time-bounded data source."""

    name: str
    fetch: Callable[[], Awaitable[T]]
    timeout: float = 5.0
    priority: int = 1


@dataclass
class Attempt:
    """Outcome of one provider attempt."""

    provider: str
    ok: bool
    elapsed: float
    error: Optional[str] = None


@dataclass
class CascadeResult(Generic[T]):
    """Winning value plus the trail of attempts that led to it."""

    value: T
    source: str
    attempts: list[Attempt] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.source == FALLBACK_SOURCE


@dataclass
class Settled(Generic[T]):
    """Result of one branch of a settled gather."""

    name: str
    priority: int
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def is_present(value: Any) -> bool:
    """Default validity check: not None and, for sized values, not empty."""
    if value is None:
        return False
    if hasattr(value, "__len__"):
        return len(value) > 0
    return True


async def _run_bounded(provider: Provider[T]) -> T:
    try:
        return await asyncio.wait_for(provider.fetch(), timeout=provider.timeout)
    except asyncio.TimeoutError:
        raise ProviderTimeoutError(provider.name, provider.timeout) from None


async def race_with_fallback(
    providers: Sequence[Provider[T]],
    is_valid: Callable[[T], bool] = is_present,
    fallback: Optional[Callable[[], Union[T, Awaitable[T]]]] = None,
    kind: str = "data",
    clock: Callable[[], float] = time.monotonic,
) -> CascadeResult[T]:
    """
    Try providers in order and return the first valid result.

    Args:
        providers: Ordered providers; each is bounded by its own timeout
        is_valid: Predicate a result must satisfy to win
        fallback: Called only when every provider failed; may be async
        kind: Label used in logs and errors
        clock: Monotonic clock used for attempt timings

    Returns:
        CascadeResult with the winning value and provider name

    Raises:
        AllProvidersFailedError: If every provider failed and no fallback was given
    """
    attempts: list[Attempt] = []

    for provider in providers:
        logger.info(f"[{kind}] Trying {provider.name} (timeout: {provider.timeout:g}s)")
        started = clock()
        try:
            value = await _run_bounded(provider)
        except Exception as e:
            elapsed = clock() - started
            attempts.append(Attempt(provider.name, False, elapsed, str(e)))
            logger.warning(f"[{kind}] {provider.name} failed after {elapsed:.2f}s: {e}")
            continue

        elapsed = clock() - started
        try:
            valid = is_valid(value)
        except Exception as e:
            logger.warning(f"[{kind}] Validity check raised for {provider.name}: {e}")
            valid = False

        if not valid:
            attempts.append(Attempt(provider.name, False, elapsed, "invalid result"))
            logger.warning(f"[{kind}] {provider.name} returned an invalid result")
            continue

        attempts.append(Attempt(provider.name, True, elapsed))
        logger.info(f"[{kind}] Success with {provider.name} in {elapsed:.2f}s")
        return CascadeResult(value=value, source=provider.name, attempts=attempts)

    errors = {a.provider: a.error or "failed" for a in attempts}

    if fallback is None:
        raise AllProvidersFailedError(kind, errors)

    logger.warning(f"[{kind}] All {len(attempts)} providers failed, using fallback")
    value = fallback()
    if inspect.isawaitable(value):
        value = await value
    return CascadeResult(value=value, source=FALLBACK_SOURCE, attempts=attempts)


async def gather_settled(providers: Sequence[Provider[Any]]) -> list[Settled[Any]]:
    """
    Run all providers concurrently, each under its own timeout.

    A failing branch never cancels its siblings. Results come back sorted
    by priority (ties keep input order).
    """

    async def run(provider: Provider[Any]) -> Settled[Any]:
        try:
            value = await _run_bounded(provider)
        except Exception as e:
            logger.warning(f"{provider.name} failed: {e}")
            return Settled(provider.name, provider.priority, error=e)
        return Settled(provider.name, provider.priority, value=value)

    results = await asyncio.gather(*(run(p) for p in providers))
    return sorted(results, key=lambda s: s.priority)


def settled_value(results: Sequence[Settled[Any]], name: str, default: Any = None) -> Any:
    """Value of the named branch, or default when it failed or is absent."""
    for result in results:
        if result.name == name:
            return result.value if result.ok else default
    return default
