"""Shared fixtures."""

from datetime import datetime

import pytest

from reading_room.core.config import AppConfig, Config


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 10, 30, 0)


@pytest.fixture
def app_config():
    """Default configuration installed as the global config."""
    config = AppConfig()
    Config.initialize(config)
    yield config
    Config.reset()


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()
