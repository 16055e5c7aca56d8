"""
Alpha Vantage provider: quotes, daily series, company overview,
news sentiment and server-side RSI/MACD.

Free keys are throttled hard; a throttled response is a 200 with a
"Note" or "Information" field instead of data.
"""

import asyncio
from datetime import datetime
from typing import Any, Optional

import httpx

from reading_room.core.exceptions import DataNotFoundError, ProviderError, RateLimitedError
from reading_room.core.logging import get_logger
from reading_room.data.models import (
    ChartDataPoint,
    CompanyOverview,
    NewsArticle,
    StockSnapshot,
    TechnicalIndicators,
)
from reading_room.data.pricing import to_float
from reading_room.data.tickers import company_name, normalize_ticker
from reading_room.providers.base import NewsProvider, StockDataProvider, build_snapshot
from reading_room.providers.http import get_json

logger = get_logger("providers.alpha_vantage")

BASE_URL = "https://www.alphavantage.co/query"


def parse_daily_series(payload: dict[str, Any], days: int = 365) -> list[ChartDataPoint]:
    series = payload.get("Time Series (Daily)") or {}
    chart = []
    for date in sorted(series)[-days:]:
        row = series[date]
        close = to_float(row.get("4. close"))
        if close is None:
            continue
        chart.append(
            ChartDataPoint(
                date=date,
                open=to_float(row.get("1. open")) or close,
                high=to_float(row.get("2. high")) or close,
                low=to_float(row.get("3. low")) or close,
                close=close,
                volume=int(to_float(row.get("5. volume")) or 0),
            )
        )
    return chart


def parse_overview(ticker: str, data: dict[str, Any]) -> CompanyOverview:
    return CompanyOverview(
        ticker=ticker,
        name=data.get("Name"),
        description=data.get("Description"),
        sector=data.get("Sector"),
        industry=data.get("Industry"),
        exchange=data.get("Exchange"),
        market_cap=to_float(data.get("MarketCapitalization")),
        pe_ratio=to_float(data.get("PERatio")),
        dividend_yield=to_float(data.get("DividendYield")),
        beta=to_float(data.get("Beta")),
        fifty_two_week_high=to_float(data.get("52WeekHigh")),
        fifty_two_week_low=to_float(data.get("52WeekLow")),
        analyst_target_price=to_float(data.get("AnalystTargetPrice")),
    )


def _published(value: Optional[str]) -> str:
    # time_published looks like 20240115T133000
    if value:
        try:
            return datetime.strptime(value, "%Y%m%dT%H%M%S").isoformat()
        except ValueError:
            pass
    return datetime.now().isoformat()


def _latest(payload: dict[str, Any], key: str) -> Optional[dict[str, Any]]:
    series = payload.get(key) or {}
    if not series:
        return None
    return series[max(series)]


class AlphaVantageProvider(StockDataProvider, NewsProvider):
    """alphavantage.co client."""

    name = "alpha_vantage"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str = "demo",
        rsi_overbought: float = 70.0,
        rsi_oversold: float = 30.0,
    ):
        self.client = client
        self.api_key = api_key
        self.rsi_overbought = rsi_overbought
        self.rsi_oversold = rsi_oversold

    async def _query(self, function: str, **params: Any) -> dict[str, Any]:
        payload = await get_json(
            self.client,
            self.name,
            BASE_URL,
            {"function": function, "apikey": self.api_key, **params},
        )
        if not isinstance(payload, dict):
            raise ProviderError(self.name, f"unexpected {function} payload")
        if "Note" in payload or "Information" in payload:
            raise RateLimitedError(self.name, payload.get("Note") or payload.get("Information"))
        if "Error Message" in payload:
            raise ProviderError(self.name, payload["Error Message"])
        return payload

    async def fetch_stock(self, ticker: str) -> StockSnapshot:
        ticker = normalize_ticker(ticker)
        quote_payload, series_payload, overview = await asyncio.gather(
            self._query("GLOBAL_QUOTE", symbol=ticker),
            self._query("TIME_SERIES_DAILY", symbol=ticker, outputsize="compact"),
            self.fetch_overview(ticker),
            return_exceptions=True,
        )
        if isinstance(quote_payload, BaseException):
            raise quote_payload

        quote = quote_payload.get("Global Quote") or {}
        if not quote:
            raise DataNotFoundError(ticker, "alpha vantage quote")

        chart = [] if isinstance(series_payload, BaseException) else parse_daily_series(series_payload)
        if isinstance(overview, BaseException):
            logger.debug(f"overview unavailable for {ticker}: {overview}")
            overview = CompanyOverview(ticker=ticker)

        return build_snapshot(
            source=self.name,
            ticker=ticker,
            name=overview.name or company_name(ticker, "en"),
            exchange=overview.exchange or "N/A",
            price=to_float(quote.get("05. price")),
            previous_close=to_float(quote.get("08. previous close")),
            chart=chart,
            change=to_float(quote.get("09. change")),
            change_percent=to_float(quote.get("10. change percent")),
            volume=to_float(quote.get("06. volume")),
            market_cap=overview.market_cap,
            pe_ratio=overview.pe_ratio,
            year_high=overview.fifty_two_week_high,
            year_low=overview.fifty_two_week_low,
            dividend_yield=overview.dividend_yield,
            beta=overview.beta,
        )

    async def fetch_overview(self, ticker: str) -> CompanyOverview:
        ticker = normalize_ticker(ticker)
        data = await self._query("OVERVIEW", symbol=ticker)
        if not data.get("Symbol") and not data.get("Name"):
            raise DataNotFoundError(ticker, "company overview")
        return parse_overview(ticker, data)

    async def fetch_news(self, query: str, language: str) -> list[NewsArticle]:
        ticker = normalize_ticker(query)
        payload = await self._query("NEWS_SENTIMENT", tickers=ticker, limit=50)
        articles = []
        for item in payload.get("feed", []):
            if not item.get("title") or not item.get("url"):
                continue
            label = str(item.get("overall_sentiment_label", "")).lower()
            articles.append(
                NewsArticle(
                    title=item["title"].strip(),
                    url=item["url"],
                    published_at=_published(item.get("time_published")),
                    source=item.get("source") or "Alpha Vantage",
                    language="en",
                    summary=item.get("summary"),
                    ticker=ticker,
                    sentiment=(
                        "positive" if "bullish" in label
                        else "negative" if "bearish" in label
                        else "neutral" if label else None
                    ),
                )
            )
        return articles

    async def fetch_technicals(self, ticker: str) -> TechnicalIndicators:
        """Server-side RSI(14) and MACD on daily closes."""
        ticker = normalize_ticker(ticker)
        rsi_payload, macd_payload = await asyncio.gather(
            self._query("RSI", symbol=ticker, interval="daily", time_period=14, series_type="close"),
            self._query("MACD", symbol=ticker, interval="daily", series_type="close"),
        )

        rsi_row = _latest(rsi_payload, "Technical Analysis: RSI")
        macd_row = _latest(macd_payload, "Technical Analysis: MACD")
        if rsi_row is None and macd_row is None:
            raise DataNotFoundError(ticker, "technical indicators")

        indicators = TechnicalIndicators(source=self.name)
        if rsi_row is not None:
            rsi = to_float(rsi_row.get("RSI"))
            indicators.rsi = rsi
            if rsi is not None:
                indicators.rsi_signal = (
                    "Overbought" if rsi > self.rsi_overbought
                    else "Oversold" if rsi < self.rsi_oversold
                    else "Neutral"
                )
        if macd_row is not None:
            indicators.macd = to_float(macd_row.get("MACD"))
            indicators.macd_signal = to_float(macd_row.get("MACD_Signal"))
            indicators.macd_histogram = to_float(macd_row.get("MACD_Hist"))
            if indicators.macd is not None and indicators.macd_signal is not None:
                indicators.macd_trend = (
                    "Bullish" if indicators.macd > indicators.macd_signal else "Bearish"
                )
        return indicators
