"""Builders and fakes shared by the tests."""

import asyncio
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional

from reading_room.core.exceptions import LLMError
from reading_room.data.models import (
    ChartDataPoint,
    DailyChange,
    IndexQuote,
    NewsArticle,
    StockData,
    StockSnapshot,
)
from reading_room.llm.base import LanguageModel
from reading_room.providers.base import IndexQuoteProvider, NewsProvider, StockDataProvider


def make_chart(closes, volumes=None, start=date(2026, 1, 1)) -> list[ChartDataPoint]:
    volumes = volumes or [1_000_000] * len(closes)
    return [
        ChartDataPoint(
            date=(start + timedelta(days=i)).isoformat(),
            open=close,
            high=close * 1.01,
            low=close * 0.99,
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes))
    ]


def make_stock(
    ticker: str = "AAPL",
    price: float = 180.0,
    change_pct: float = 0.0,
    pe: Optional[float] = 25.0,
    beta: Optional[float] = 1.2,
    name: str = "Apple Inc.",
) -> StockData:
    return StockData(
        ticker=ticker,
        name=name,
        exchange="NASDAQ",
        current_price=price,
        daily_change=DailyChange(round(price * change_pct / 100, 2), change_pct),
        volume="50.0M",
        market_cap="2.80T",
        pe_ratio=pe,
        fifty_two_week_high=price * 1.2,
        fifty_two_week_low=price * 0.8,
        beta=beta,
    )


class FakeLLM(LanguageModel):
    """Returns canned responses in order; an exception instance is raised instead."""

    model = "fake-model"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise LLMError(self.model, "no more responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeStockProvider(StockDataProvider):
    """Returns a fixed snapshot (or raises) and records the tickers asked for."""

    def __init__(self, name, price=None, chart=None, error=None, exchange="NASDAQ"):
        self.name = name
        self.price = price
        self.chart = chart or []
        self.error = error
        self.exchange = exchange
        self.calls = []

    async def fetch_stock(self, ticker):
        self.calls.append(ticker)
        if self.error is not None:
            raise self.error
        return StockSnapshot(
            stock=make_stock(ticker, price=self.price, change_pct=1.0),
            chart=list(self.chart),
            source=self.name,
        )


class FakeIndexProvider(IndexQuoteProvider):
    def __init__(self, name, prices=None, error=None):
        self.name = name
        self.prices = prices or {}
        self.error = error
        self.calls = 0

    async def fetch_indices(self, symbols):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [
            IndexQuote(symbol=s, price=self.prices[s], source=self.name)
            for s in symbols
            if s in self.prices
        ]


class FakeNewsProvider(NewsProvider):
    def __init__(self, name, articles=None, error=None, delay=0.0):
        self.name = name
        self.articles = articles or []
        self.error = error
        self.delay = delay
        self.calls = []

    async def fetch_news(self, query, language):
        self.calls.append((query, language))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [replace(a) for a in self.articles]


class FakeValueSource:
    """Fear & Greed, technicals or overview source returning a canned value."""

    def __init__(self, name, value=None, error=None):
        self.name = name
        self.value = value
        self.error = error
        self.calls = 0

    async def _answer(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.value

    async def fetch_value(self):
        return await self._answer()

    async def fetch_technicals(self, ticker):
        return await self._answer()

    async def fetch_overview(self, ticker):
        return await self._answer()


def make_article(title, source="Reuters", published_at="2026-03-10T09:00:00", **kwargs):
    url = kwargs.pop("url", f"https://news.example/{source}/{title}")
    return NewsArticle(
        title=title, url=url, published_at=published_at, source=source, **kwargs
    )
