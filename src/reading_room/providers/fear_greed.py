"""
Fear & Greed index sources.

CNN publishes the index directly; alternative.me publishes the crypto
variant; the VIX is mapped onto the same 0..100 scale as a last resort.
"""

from typing import Optional

import httpx

from reading_room.core.exceptions import DataNotFoundError, ProviderError
from reading_room.data.pricing import to_float
from reading_room.providers.http import get_json
from reading_room.providers.yahoo import YahooFinanceProvider

CNN_URL = "https://production.dataviz.cnn.io/index/fearandgreed/graphdata"
ALTERNATIVE_ME_URL = "https://api.alternative.me/fng/"


def clamp_index(value: float) -> float:
    return max(0.0, min(100.0, value))


def vix_to_fear_greed(vix: float) -> float:
    """
    Map a VIX level onto the Fear & Greed scale.

    Low volatility reads as greed, high volatility as fear.
    """
    if vix <= 12:
        value = 85.0
    elif vix <= 20:
        value = 70 - (vix - 12) * 2.5
    elif vix <= 30:
        value = 50 - (vix - 20) * 2
    elif vix <= 40:
        value = 30 - (vix - 30) * 2
    else:
        value = 15.0
    return clamp_index(value)


class CNNFearGreedSource:
    name = "cnn"

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch_value(self) -> float:
        data = await get_json(
            self.client,
            self.name,
            CNN_URL,
            headers={"Referer": "https://edition.cnn.com/", "Origin": "https://edition.cnn.com"},
        )
        score = to_float((data.get("fear_and_greed") or {}).get("score")) if isinstance(data, dict) else None
        if score is None:
            raise DataNotFoundError("fear_and_greed", "cnn index")
        return clamp_index(score)


class AlternativeMeSource:
    name = "alternative_me"

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch_value(self) -> float:
        data = await get_json(self.client, self.name, ALTERNATIVE_ME_URL, {"limit": 1})
        rows = data.get("data") if isinstance(data, dict) else None
        if not rows:
            raise ProviderError(self.name, "empty data list")
        value: Optional[float] = to_float(rows[0].get("value"))
        if value is None:
            raise DataNotFoundError("fear_and_greed", "alternative.me index")
        return clamp_index(value)


class VIXFearGreedSource:
    name = "vix"

    def __init__(self, yahoo: YahooFinanceProvider):
        self.yahoo = yahoo

    async def fetch_value(self) -> float:
        vix = await self.yahoo.fetch_vix()
        return round(vix_to_fear_greed(vix), 1)
