"""Tests for the Fear & Greed service."""

import asyncio

import pytest

from reading_room.core.exceptions import ProviderError
from reading_room.services.fear_greed import FearGreedService, fear_greed_label
from reading_room.services.registry import ProviderSet
from reading_room.simulation import simulated_fear_greed

from tests.helpers import FakeValueSource


@pytest.mark.parametrize(
    "value,label",
    [
        (0, "Extreme Fear"),
        (24.9, "Extreme Fear"),
        (25, "Fear"),
        (44.9, "Fear"),
        (45, "Neutral"),
        (55, "Neutral"),
        (56, "Greed"),
        (75, "Greed"),
        (75.1, "Extreme Greed"),
        (100, "Extreme Greed"),
    ],
)
def test_labels(value, label):
    assert fear_greed_label(value) == label


def test_first_valid_source_wins(now):
    sources = {
        "cnn": FakeValueSource("cnn", error=ProviderError("cnn", "HTTP 418")),
        "alternative_me": FakeValueSource("alternative_me", 150.0),
        "vix": FakeValueSource("vix", 31.26),
    }
    service = FearGreedService(ProviderSet(fear_greed=sources), now=lambda: now)
    reading = asyncio.run(service.get_index())

    assert reading.value == 31.3
    assert reading.label == "Fear"
    assert reading.source == "vix"
    assert all(s.calls == 1 for s in sources.values())


def test_stops_at_first_success(now):
    sources = {
        "cnn": FakeValueSource("cnn", 62.0),
        "vix": FakeValueSource("vix", 20.0),
    }
    reading = asyncio.run(FearGreedService(ProviderSet(fear_greed=sources), now=lambda: now).get_index())

    assert (reading.value, reading.label, reading.source) == (62.0, "Greed", "cnn")
    assert sources["vix"].calls == 0


def test_simulated_when_everything_fails(now):
    sources = {"cnn": FakeValueSource("cnn", error=RuntimeError("down"))}
    reading = asyncio.run(FearGreedService(ProviderSet(fear_greed=sources), now=lambda: now).get_index())

    assert reading.source == "simulation"
    assert reading.value == simulated_fear_greed(now)
    assert 0 <= reading.value <= 100
    assert reading.label == fear_greed_label(reading.value)
