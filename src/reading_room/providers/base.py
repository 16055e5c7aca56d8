"""
Provider interfaces.

Services depend on these, never on a concrete API client, so a source
can be swapped (e.g. a scraper replaced by a proper API) without
touching callers.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from reading_room.core.exceptions import DataNotFoundError, DataValidationError
from reading_room.data.models import ChartDataPoint, IndexQuote, NewsArticle, StockData, StockSnapshot
from reading_room.data.pricing import (
    calculate_daily_change,
    format_market_cap,
    format_volume,
    validate_price,
)


class StockDataProvider(ABC):
    """Source of quote + chart data for a single ticker."""

    name: str = "stock"

    @abstractmethod
    async def fetch_stock(self, ticker: str) -> StockSnapshot:
        """
        Fetch a quote and daily chart.

        Raises:
            ProviderError: On transport or payload problems
            DataNotFoundError: If the provider has nothing for the ticker
        """


class IndexQuoteProvider(ABC):
    """Source of index and FX quotes."""

    name: str = "indices"

    @abstractmethod
    async def fetch_indices(self, symbols: Sequence[str]) -> list[IndexQuote]:
        """Fetch quotes for the requested symbols; missing symbols are omitted."""


class NewsProvider(ABC):
    """Source of news articles."""

    name: str = "news"

    @abstractmethod
    async def fetch_news(self, query: str, language: str) -> list[NewsArticle]:
        """Fetch articles for a ticker or topic."""


def clean_chart(source: str, ticker: str, chart: Optional[list[ChartDataPoint]]) -> list[ChartDataPoint]:
    """
    Chart sorted by date with one bar per day and unusable bars dropped.

    Raises:
        DataValidationError: If the provider sent bars but none are usable
    """
    if not chart:
        return []

    by_date: dict[str, ChartDataPoint] = {}
    issues = []
    for point in chart:
        if not point.date:
            issues.append("bar without a date")
        elif not point.close or point.close <= 0:
            issues.append(f"{point.date}: non-positive close")
        elif point.high < point.low:
            issues.append(f"{point.date}: high below low")
        else:
            by_date[point.date] = point

    if not by_date:
        raise DataValidationError(
            f"{source}: no usable chart bars for {ticker}", issues=issues
        )
    return [by_date[d] for d in sorted(by_date)]


def build_snapshot(
    source: str,
    ticker: str,
    name: str,
    exchange: str,
    price: Optional[float],
    previous_close: Optional[float],
    chart: Optional[list[ChartDataPoint]] = None,
    change: Optional[float] = None,
    change_percent: Optional[float] = None,
    volume: Optional[float] = None,
    market_cap: Optional[float] = None,
    pe_ratio: Optional[float] = None,
    year_high: Optional[float] = None,
    year_low: Optional[float] = None,
    dividend_yield: Optional[float] = None,
    beta: Optional[float] = None,
) -> StockSnapshot:
    """
    Assemble a snapshot from loosely-typed provider fields.

    Missing 52-week bounds and volume are derived from the chart; the
    daily change always goes through the sanity checks.
    """
    chart = clean_chart(source, ticker, chart)
    price = validate_price(price, chart[-1].close if chart else None)
    if price <= 0:
        raise DataNotFoundError(ticker, f"{source} price")

    if previous_close is None and change is not None:
        previous_close = price - change
    if previous_close is None and len(chart) >= 2:
        previous_close = chart[-2].close

    if volume is None and chart:
        volume = chart[-1].volume
    if year_high is None and chart:
        year_high = max(p.high for p in chart)
    if year_low is None and chart:
        year_low = min(p.low for p in chart)

    stock = StockData(
        ticker=ticker,
        name=name or ticker,
        exchange=exchange,
        current_price=price,
        daily_change=calculate_daily_change(price, previous_close, change, change_percent),
        volume=format_volume(volume),
        market_cap=format_market_cap(market_cap),
        pe_ratio=pe_ratio,
        fifty_two_week_high=year_high or 0.0,
        fifty_two_week_low=year_low or 0.0,
        dividend_yield=dividend_yield,
        beta=beta,
    )
    return StockSnapshot(stock=stock, chart=chart, source=source)
