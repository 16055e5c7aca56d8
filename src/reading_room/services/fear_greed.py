"""
Fear & Greed index with a simulated fallback.
"""

from datetime import datetime
from typing import Callable, Optional

from reading_room.core.config import ProvidersConfig
from reading_room.core.logging import get_logger
from reading_room.data.models import FearGreedReading
from reading_room.fetch.cascade import race_with_fallback
from reading_room.services.registry import ProviderSet, plan
from reading_room.simulation import SIMULATION_SOURCE, simulated_fear_greed

logger = get_logger("services.fear_greed")


def fear_greed_label(value: float) -> str:
    if value < 25:
        return "Extreme Fear"
    if value < 45:
        return "Fear"
    if value <= 55:
        return "Neutral"
    if value <= 75:
        return "Greed"
    return "Extreme Greed"


def _in_range(value: Optional[float]) -> bool:
    return value is not None and 0 <= value <= 100


class FearGreedService:
    def __init__(
        self,
        providers: ProviderSet,
        config: Optional[ProvidersConfig] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.providers = providers
        self.config = config or ProvidersConfig()
        self._now = now

    async def get_index(self) -> FearGreedReading:
        """Current reading; never raises."""
        fetchers = {
            name: (lambda s=s: s.fetch_value()) for name, s in self.providers.fear_greed.items()
        }
        result = await race_with_fallback(
            plan(self.config.fear_greed, fetchers),
            is_valid=_in_range,
            fallback=lambda: simulated_fear_greed(self._now()),
            kind="fear & greed",
        )
        value = round(float(result.value), 1)
        source = SIMULATION_SOURCE if result.used_fallback else result.source
        return FearGreedReading(value=value, label=fear_greed_label(value), source=source)
