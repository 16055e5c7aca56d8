"""
Finnhub provider. Quote only: the free tier has no candle endpoint.
"""

from typing import Optional

import httpx

from reading_room.core.exceptions import DataNotFoundError
from reading_room.data.models import StockSnapshot
from reading_room.data.pricing import to_float
from reading_room.data.tickers import company_name, normalize_ticker
from reading_room.providers.base import StockDataProvider, build_snapshot
from reading_room.providers.http import get_json

BASE_URL = "https://finnhub.io/api/v1"


class FinnhubProvider(StockDataProvider):
    """Real-time quote from finnhub.io."""

    name = "finnhub"

    def __init__(self, client: httpx.AsyncClient, api_key: Optional[str] = None):
        self.client = client
        # Without a key, finnhub still answers a few symbols for the demo token
        self.api_key = api_key or "demo"

    async def fetch_stock(self, ticker: str) -> StockSnapshot:
        ticker = normalize_ticker(ticker)
        data = await get_json(
            self.client,
            self.name,
            f"{BASE_URL}/quote",
            {"symbol": ticker, "token": self.api_key},
        )
        # Unknown symbols come back as all zeros
        price = to_float(data.get("c")) if isinstance(data, dict) else None
        if not price:
            raise DataNotFoundError(ticker, "finnhub quote")

        return build_snapshot(
            source=self.name,
            ticker=ticker,
            name=company_name(ticker, "en"),
            exchange="US",
            price=price,
            previous_close=to_float(data.get("pc")),
            change=to_float(data.get("d")),
            change_percent=to_float(data.get("dp")),
        )
