"""
Financial Modeling Prep provider.
"""

import asyncio
from typing import Any, Optional, Sequence
from urllib.parse import quote

import httpx

from reading_room.core.exceptions import DataNotFoundError, ProviderError
from reading_room.core.logging import get_logger
from reading_room.data.models import ChartDataPoint, IndexQuote, StockSnapshot
from reading_room.data.pricing import to_float
from reading_room.data.tickers import company_name, normalize_ticker
from reading_room.providers.base import IndexQuoteProvider, StockDataProvider, build_snapshot
from reading_room.providers.http import get_json

logger = get_logger("providers.fmp")

BASE_URL = "https://financialmodelingprep.com/api/v3"

# FMP spells FX pairs without the Yahoo suffix.
FMP_SYMBOLS = {"USDKRW=X": "USDKRW"}


def parse_historical(payload: Any) -> list[ChartDataPoint]:
    """Convert historical-price-full (newest first) into oldest-first chart points."""
    rows = payload.get("historical", []) if isinstance(payload, dict) else []
    chart = []
    for row in reversed(rows):
        close = to_float(row.get("close"))
        if close is None:
            continue
        chart.append(
            ChartDataPoint(
                date=str(row.get("date", ""))[:10],
                open=to_float(row.get("open")) or close,
                high=to_float(row.get("high")) or close,
                low=to_float(row.get("low")) or close,
                close=close,
                volume=int(to_float(row.get("volume")) or 0),
            )
        )
    return chart


class FMPProvider(StockDataProvider, IndexQuoteProvider):
    """Quotes and daily history from financialmodelingprep.com."""

    name = "fmp"

    def __init__(self, client: httpx.AsyncClient, api_key: Optional[str] = None, chart_days: int = 365):
        self.client = client
        self.api_key = api_key or "demo"
        self.chart_days = chart_days

    def _params(self, **extra: Any) -> dict[str, Any]:
        return {"apikey": self.api_key, **extra}

    async def _quote(self, symbols: str) -> list[dict[str, Any]]:
        payload = await get_json(
            self.client, self.name, f"{BASE_URL}/quote/{quote(symbols, safe=',')}", self._params()
        )
        if isinstance(payload, dict) and payload.get("Error Message"):
            raise ProviderError(self.name, payload["Error Message"])
        if not isinstance(payload, list):
            raise ProviderError(self.name, "unexpected quote payload")
        return payload

    async def fetch_stock(self, ticker: str) -> StockSnapshot:
        ticker = normalize_ticker(ticker)
        quotes, history = await asyncio.gather(
            self._quote(ticker),
            get_json(
                self.client,
                self.name,
                f"{BASE_URL}/historical-price-full/{quote(ticker)}",
                self._params(timeseries=self.chart_days),
            ),
        )
        if not quotes:
            raise DataNotFoundError(ticker, "fmp quote")

        q = quotes[0]
        return build_snapshot(
            source=self.name,
            ticker=ticker,
            name=q.get("name") or company_name(ticker, "en"),
            exchange=q.get("exchange") or "N/A",
            price=to_float(q.get("price")),
            previous_close=to_float(q.get("previousClose")),
            chart=parse_historical(history),
            change=to_float(q.get("change")),
            change_percent=to_float(q.get("changesPercentage")),
            volume=to_float(q.get("volume")),
            market_cap=to_float(q.get("marketCap")),
            pe_ratio=to_float(q.get("pe")),
            year_high=to_float(q.get("yearHigh")),
            year_low=to_float(q.get("yearLow")),
        )

    async def fetch_indices(self, symbols: Sequence[str]) -> list[IndexQuote]:
        wanted = {FMP_SYMBOLS.get(s, s): s for s in symbols}
        quotes = await self._quote(",".join(wanted))

        result = []
        for q in quotes:
            symbol = wanted.get(q.get("symbol", ""))
            price = to_float(q.get("price"))
            if symbol is None or not price:
                continue
            result.append(
                IndexQuote(
                    symbol=symbol,
                    price=round(price, 2),
                    change=round(to_float(q.get("change")) or 0.0, 2),
                    change_percent=round(to_float(q.get("changesPercentage")) or 0.0, 2),
                    source=self.name,
                )
            )
        return result
