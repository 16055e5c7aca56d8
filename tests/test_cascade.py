"""Tests for the provider fallback cascade."""

import asyncio

import pytest

from reading_room.core.exceptions import AllProvidersFailedError, ProviderTimeoutError
from reading_room.fetch.cascade import (
    FALLBACK_SOURCE,
    Provider,
    gather_settled,
    is_present,
    race_with_fallback,
    settled_value,
)


def value_provider(name, value, calls=None, timeout=1.0, priority=1):
    async def fetch():
        if calls is not None:
            calls.append(name)
        return value

    return Provider(name=name, fetch=fetch, timeout=timeout, priority=priority)


def failing_provider(name, calls=None, timeout=1.0, priority=1):
    async def fetch():
        if calls is not None:
            calls.append(name)
        raise RuntimeError(f"{name} down")

    return Provider(name=name, fetch=fetch, timeout=timeout, priority=priority)


def slow_provider(name, delay, value="slow", timeout=0.05, priority=1):
    async def fetch():
        await asyncio.sleep(delay)
        return value

    return Provider(name=name, fetch=fetch, timeout=timeout, priority=priority)


class TestRaceWithFallback:
    def test_first_valid_wins_and_later_providers_never_start(self):
        calls = []
        providers = [
            value_provider("a", "A", calls),
            value_provider("b", "B", calls),
        ]
        result = asyncio.run(race_with_fallback(providers))

        assert result.value == "A"
        assert result.source == "a"
        assert calls == ["a"]
        assert not result.used_fallback

    def test_errors_fall_through_in_order(self):
        calls = []
        providers = [
            failing_provider("a", calls),
            failing_provider("b", calls),
            value_provider("c", "C", calls),
        ]
        result = asyncio.run(race_with_fallback(providers))

        assert result.source == "c"
        assert calls == ["a", "b", "c"]
        assert [a.ok for a in result.attempts] == [False, False, True]
        assert "a down" in result.attempts[0].error

    def test_invalid_result_is_skipped(self):
        providers = [value_provider("a", []), value_provider("b", [1, 2])]
        result = asyncio.run(race_with_fallback(providers))

        assert result.source == "b"
        assert result.attempts[0].error == "invalid result"

    def test_custom_validity_check(self):
        providers = [value_provider("a", 0), value_provider("b", 42)]
        result = asyncio.run(race_with_fallback(providers, is_valid=lambda v: v > 0))
        assert result.value == 42

    def test_validity_check_that_raises_counts_as_invalid(self):
        providers = [value_provider("a", None), value_provider("b", 3)]
        result = asyncio.run(race_with_fallback(providers, is_valid=lambda v: v > 1))
        assert result.source == "b"

    def test_timeout_moves_on_to_next_provider(self):
        providers = [slow_provider("slow", delay=1.0, timeout=0.05), value_provider("fast", "F")]
        result = asyncio.run(race_with_fallback(providers))

        assert result.source == "fast"
        assert "timed out" in result.attempts[0].error

    def test_fallback_used_when_all_fail(self):
        providers = [failing_provider("a"), value_provider("b", None)]
        result = asyncio.run(race_with_fallback(providers, fallback=lambda: "simulated"))

        assert result.value == "simulated"
        assert result.source == FALLBACK_SOURCE
        assert result.used_fallback
        assert len(result.attempts) == 2

    def test_async_fallback_is_awaited(self):
        async def fallback():
            return "async simulated"

        result = asyncio.run(race_with_fallback([failing_provider("a")], fallback=fallback))
        assert result.value == "async simulated"

    def test_fallback_not_called_on_success(self):
        called = []
        result = asyncio.run(
            race_with_fallback(
                [value_provider("a", "A")], fallback=lambda: called.append(1) or "x"
            )
        )
        assert result.value == "A"
        assert called == []

    def test_no_fallback_raises_with_errors(self):
        providers = [failing_provider("a"), failing_provider("b")]
        with pytest.raises(AllProvidersFailedError) as exc_info:
            asyncio.run(race_with_fallback(providers, kind="stock"))

        err = exc_info.value
        assert err.kind == "stock"
        assert set(err.errors) == {"a", "b"}
        assert err.code == "ALL_PROVIDERS_FAILED"

    def test_empty_provider_list_goes_straight_to_fallback(self):
        result = asyncio.run(race_with_fallback([], fallback=lambda: 7))
        assert result.value == 7
        assert result.attempts == []

    def test_attempt_timings_use_injected_clock(self, clock):
        async def fetch():
            clock.advance(2.5)
            return "v"

        result = asyncio.run(
            race_with_fallback([Provider("a", fetch)], clock=clock)
        )
        assert result.attempts[0].elapsed == pytest.approx(2.5)


class TestGatherSettled:
    def test_failures_do_not_cancel_siblings(self):
        providers = [
            failing_provider("bad", priority=1),
            value_provider("good", [1], priority=2),
        ]
        results = asyncio.run(gather_settled(providers))

        assert [r.name for r in results] == ["bad", "good"]
        assert not results[0].ok
        assert results[1].ok and results[1].value == [1]

    def test_sorted_by_priority(self):
        providers = [
            value_provider("third", 3, priority=3),
            value_provider("first", 1, priority=1),
            value_provider("second", 2, priority=2),
        ]
        results = asyncio.run(gather_settled(providers))
        assert [r.value for r in results] == [1, 2, 3]

    def test_timeout_is_settled_as_error(self):
        results = asyncio.run(gather_settled([slow_provider("slow", delay=1.0, timeout=0.05)]))
        assert isinstance(results[0].error, ProviderTimeoutError)

    def test_settled_value(self):
        results = asyncio.run(
            gather_settled([value_provider("a", "A"), failing_provider("b")])
        )
        assert settled_value(results, "a") == "A"
        assert settled_value(results, "b", default="d") == "d"
        assert settled_value(results, "missing") is None


def test_is_present():
    assert not is_present(None)
    assert not is_present([])
    assert not is_present("")
    assert is_present(0)
    assert is_present([0])
