"""
Yahoo Finance provider backed by yfinance.

yfinance is synchronous, so every call runs in a worker thread. When the
cascade times out the thread is abandoned rather than interrupted.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence

import pandas as pd
import yfinance as yf

from reading_room.core.exceptions import DataNotFoundError, ProviderError
from reading_room.core.logging import get_logger
from reading_room.data.cache import DataCache
from reading_room.data.models import ChartDataPoint, IndexQuote, NewsArticle, StockSnapshot
from reading_room.data.pricing import to_float
from reading_room.data.tickers import company_name, is_korean_ticker, normalize_ticker, yahoo_symbol
from reading_room.providers.base import (
    IndexQuoteProvider,
    NewsProvider,
    StockDataProvider,
    build_snapshot,
)

logger = get_logger("providers.yahoo")

# Last chart close wins over the quote endpoint when they disagree by more than this.
STALE_QUOTE_TOLERANCE = 0.01


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize column names and timezone to be consistent."""
    df = df.copy()
    df.columns = [str(c).lower().replace(" ", "_") for c in df.columns]
    if hasattr(df.index, "tz") and df.index.tz is not None:
        df.index = df.index.tz_localize(None)
    return df


def frame_to_chart(df: pd.DataFrame) -> list[ChartDataPoint]:
    """Convert a yfinance history frame to chart points, dropping empty rows."""
    if df is None or len(df) == 0:
        return []

    df = normalize_columns(df).dropna(subset=["close"])
    return [
        ChartDataPoint(
            date=pd.Timestamp(idx).strftime("%Y-%m-%d"),
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=int(row["volume"]) if pd.notna(row.get("volume")) else 0,
        )
        for idx, row in df.iterrows()
    ]


def _parse_news_item(item: dict[str, Any], ticker: Optional[str]) -> Optional[NewsArticle]:
    # yfinance >= 0.2.50 nests everything under "content"
    content = item.get("content") if isinstance(item.get("content"), dict) else None
    if content:
        title = content.get("title")
        url = (content.get("canonicalUrl") or {}).get("url") or (
            content.get("clickThroughUrl") or {}
        ).get("url")
        published = content.get("pubDate") or content.get("displayTime")
        source = (content.get("provider") or {}).get("displayName") or "Yahoo Finance"
        summary = content.get("summary")
    else:
        title = item.get("title")
        url = item.get("link")
        timestamp = item.get("providerPublishTime")
        published = (
            datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat() if timestamp else None
        )
        source = item.get("publisher") or "Yahoo Finance"
        summary = item.get("summary")

    if not title or not url:
        return None

    return NewsArticle(
        title=title.strip(),
        url=url,
        published_at=published or datetime.now(timezone.utc).isoformat(),
        source=source,
        language="en",
        summary=summary,
        ticker=ticker,
    )


class YahooFinanceProvider(StockDataProvider, IndexQuoteProvider, NewsProvider):
    """Quotes, charts, index levels and headlines from Yahoo Finance."""

    name = "yahoo"

    def __init__(
        self,
        ticker_factory: Callable[[str], Any] = yf.Ticker,
        chart_period: str = "1y",
        ticker_cache_size: int = 64,
    ):
        self._ticker_factory = ticker_factory
        self.chart_period = chart_period
        self._ticker_cache = DataCache(max_items=ticker_cache_size)

    def _get_yf_ticker(self, symbol: str) -> Any:
        """Get or create yfinance Ticker object."""
        ticker = self._ticker_cache.get(symbol)
        if ticker is None:
            ticker = self._ticker_factory(symbol)
            self._ticker_cache.set(symbol, ticker)
        return ticker

    def _history(self, symbol: str, period: str) -> pd.DataFrame:
        try:
            return self._get_yf_ticker(symbol).history(
                period=period, interval="1d", auto_adjust=False
            )
        except Exception as e:
            raise ProviderError(self.name, f"history failed for {symbol}: {e}") from e

    def _info(self, symbol: str) -> dict[str, Any]:
        # .info scrapes a separate endpoint that breaks independently of history
        try:
            return self._get_yf_ticker(symbol).info or {}
        except Exception as e:
            logger.debug(f"info unavailable for {symbol}: {e}")
            return {}

    async def fetch_stock(self, ticker: str) -> StockSnapshot:
        return await asyncio.to_thread(self._load_stock, normalize_ticker(ticker))

    def _load_stock(self, ticker: str) -> StockSnapshot:
        symbol = yahoo_symbol(ticker)
        chart = frame_to_chart(self._history(symbol, self.chart_period))
        info = self._info(symbol)

        price = to_float(info.get("regularMarketPrice") or info.get("currentPrice"))
        previous_close = to_float(
            info.get("regularMarketPreviousClose") or info.get("previousClose")
        )

        if chart:
            last_close = chart[-1].close
            if price is None or abs(price - last_close) / last_close > STALE_QUOTE_TOLERANCE:
                if price is not None:
                    logger.info(
                        f"{symbol}: quote {price} differs from last close {last_close} by >1%, "
                        f"using chart"
                    )
                price = last_close
                previous_close = chart[-2].close if len(chart) >= 2 else previous_close

        if price is None:
            raise DataNotFoundError(symbol, "yahoo quote")

        default_exchange = "KOSPI" if is_korean_ticker(symbol) else "NASDAQ"
        dividend = to_float(info.get("dividendYield"))

        return build_snapshot(
            source=self.name,
            ticker=ticker,
            name=info.get("longName") or info.get("shortName") or company_name(ticker, "en"),
            exchange=info.get("exchange") or default_exchange,
            price=price,
            previous_close=previous_close,
            chart=chart,
            volume=to_float(info.get("regularMarketVolume") or info.get("volume")),
            market_cap=to_float(info.get("marketCap")),
            pe_ratio=to_float(info.get("trailingPE")),
            year_high=to_float(info.get("fiftyTwoWeekHigh")),
            year_low=to_float(info.get("fiftyTwoWeekLow")),
            dividend_yield=dividend,
            beta=to_float(info.get("beta")),
        )

    async def fetch_indices(self, symbols: Sequence[str]) -> list[IndexQuote]:
        quotes = await asyncio.gather(
            *(asyncio.to_thread(self._load_index, s) for s in symbols),
            return_exceptions=True,
        )
        result = []
        for symbol, quote in zip(symbols, quotes):
            if isinstance(quote, Exception):
                logger.debug(f"index {symbol} unavailable: {quote}")
                continue
            result.append(quote)
        return result

    def _load_index(self, symbol: str) -> IndexQuote:
        df = self._history(symbol, "5d")
        closes = normalize_columns(df)["close"].dropna() if df is not None and len(df) else []
        if len(closes) == 0:
            raise DataNotFoundError(symbol, "yahoo index")

        price = float(closes.iloc[-1])
        previous = float(closes.iloc[-2]) if len(closes) >= 2 else price
        change = price - previous
        return IndexQuote(
            symbol=symbol,
            price=round(price, 2),
            change=round(change, 2),
            change_percent=round(change / previous * 100, 2) if previous else 0.0,
            source=self.name,
        )

    async def fetch_news(self, query: str, language: str) -> list[NewsArticle]:
        return await asyncio.to_thread(self._load_news, normalize_ticker(query))

    def _load_news(self, ticker: str) -> list[NewsArticle]:
        try:
            items = self._get_yf_ticker(yahoo_symbol(ticker)).news or []
        except Exception as e:
            raise ProviderError(self.name, f"news failed for {ticker}: {e}") from e

        articles = [_parse_news_item(item, ticker) for item in items if isinstance(item, dict)]
        return [a for a in articles if a is not None]

    async def fetch_vix(self) -> float:
        """Latest CBOE volatility index close."""
        quote = await asyncio.to_thread(self._load_index, "^VIX")
        return quote.price
