"""
Market data service: stock quotes, index levels and the per-ticker
overview, each backed by a provider cascade with a simulated fallback.
"""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Awaitable, Callable, Optional, Sequence

import httpx

from reading_room.analysis.technical import compute_indicators
from reading_room.core.config import AppConfig, get_config
from reading_room.core.logging import get_logger
from reading_room.data.cache import DataCache
from reading_room.data.models import (
    ChartDataPoint,
    CompanyOverview,
    IndexQuote,
    MarketOverview,
    StockSnapshot,
    TechnicalIndicators,
)
from reading_room.data.tickers import is_korean_ticker, normalize_ticker
from reading_room.fetch.cascade import Provider, race_with_fallback
from reading_room.services.news import NewsService
from reading_room.services.registry import ProviderSet, build_providers, plan
from reading_room.simulation import (
    BASE_VOLUMES,
    INDEX_SYMBOLS,
    base_stock,
    fallback_stock,
    simulated_chart,
    simulated_indices,
)
from reading_room.storage.base import NewsStore

logger = get_logger("services.market_data")

USDKRW = "USDKRW=X"
MIN_INDEX_QUOTES = 2


def is_valid_snapshot(snapshot: Optional[StockSnapshot]) -> bool:
    return (
        snapshot is not None
        and snapshot.stock is not None
        and snapshot.stock.current_price is not None
        and snapshot.stock.current_price > 0
    )


def is_valid_index_list(quotes: Optional[Sequence[IndexQuote]]) -> bool:
    return bool(quotes) and sum(1 for q in quotes if q.price and q.price > 0) >= MIN_INDEX_QUOTES


def has_indicators(indicators: Optional[TechnicalIndicators]) -> bool:
    return indicators is not None and (indicators.rsi is not None or indicators.macd is not None)


class MarketDataService:
    """
    Entry point for quotes, indices and overviews.

    Market-data calls never raise for upstream failures: when every
    provider fails, the deterministic simulation answers instead.
    """

    def __init__(
        self,
        providers: ProviderSet,
        config: Optional[AppConfig] = None,
        cache: Optional[DataCache] = None,
        news: Optional[NewsService] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.providers = providers
        self.config = config or get_config()
        if cache is None:
            cache = DataCache(max_items=self.config.cache.max_items)
        self.cache = cache
        self._now = now
        self.news = news or NewsService(
            providers, self.config.news, self.config.providers, now=now
        )

    @classmethod
    def from_config(
        cls,
        config: Optional[AppConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        store: Optional[NewsStore] = None,
    ) -> "MarketDataService":
        config = config or get_config()
        providers = build_providers(config, client)
        news = NewsService(providers, config.news, config.providers, store=store)
        return cls(providers, config, news=news)

    async def aclose(self) -> None:
        await self.providers.aclose()

    async def __aenter__(self) -> "MarketDataService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # Stock quotes

    def _stock_plan(self, ticker: str) -> list[Provider[StockSnapshot]]:
        settings = (
            self.config.providers.korean_stock
            if is_korean_ticker(ticker)
            else self.config.providers.international_stock
        )
        fetchers = {
            name: (lambda p=p: p.fetch_stock(ticker)) for name, p in self.providers.stock.items()
        }
        return plan(settings, fetchers)

    def _with_chart(self, snapshot: StockSnapshot) -> StockSnapshot:
        """Attach a simulated chart anchored on the real price when a provider had none."""
        if snapshot.chart:
            return snapshot
        key, _ = base_stock(snapshot.ticker)
        chart = simulated_chart(
            snapshot.ticker,
            snapshot.stock.current_price,
            self._now(),
            days=self.config.simulation.chart_days,
            base_volume=BASE_VOLUMES.get(key),
        )
        logger.info(f"{snapshot.ticker}: {snapshot.source} has no chart, attached simulated chart")
        return replace(snapshot, chart=chart)

    async def get_stock_and_chart(self, ticker: str) -> StockSnapshot:
        """
        Quote and daily chart for a ticker.

        Korean and international tickers use different provider orders.
        Successful real results are cached briefly; simulated ones are not.
        """
        ticker = normalize_ticker(ticker)
        cache_key = f"stock:{ticker}"
        if self.config.cache.enabled:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit for {ticker}")
                return cached

        result = await race_with_fallback(
            self._stock_plan(ticker),
            is_valid=is_valid_snapshot,
            fallback=lambda: fallback_stock(ticker, self._now(), self.config.simulation.chart_days),
            kind=f"stock {ticker}",
        )
        if result.used_fallback:
            return result.value

        snapshot = self._with_chart(result.value)
        if self.config.cache.enabled:
            self.cache.set(cache_key, snapshot, ttl_seconds=self.config.cache.quote_ttl_seconds)
        return snapshot

    # Indices

    async def _fetch_forex(self) -> Optional[IndexQuote]:
        if self.providers.forex is None:
            return None
        try:
            quotes = await asyncio.wait_for(
                self.providers.forex.fetch_indices([USDKRW]),
                timeout=self.config.providers.forex_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Forex quote timed out after {self.config.providers.forex_timeout:g}s")
            return None
        except Exception as e:
            logger.warning(f"Forex quote failed: {e}")
            return None
        return next((q for q in quotes if q.symbol == USDKRW and q.price > 0), None)

    async def get_global_indices(
        self, symbols: Sequence[str] = INDEX_SYMBOLS
    ) -> list[IndexQuote]:
        """
        KOSPI, NASDAQ, S&P 500 and USD/KRW.

        A dedicated forex quote, when available, replaces whatever
        USD/KRW value the winning source produced.
        """
        symbols = list(symbols)
        fetchers = {
            name: (lambda p=p: p.fetch_indices(symbols))
            for name, p in self.providers.indices.items()
        }
        cascade = race_with_fallback(
            plan(self.config.providers.indices, fetchers),
            is_valid=is_valid_index_list,
            fallback=lambda: simulated_indices(
                self._now(), self.config.simulation, tuple(symbols)
            ),
            kind="indices",
        )

        if USDKRW in symbols:
            result, forex = await asyncio.gather(cascade, self._fetch_forex())
        else:
            result, forex = await cascade, None

        by_symbol = {q.symbol: q for q in result.value}
        if forex is not None:
            by_symbol[USDKRW] = forex
        return [by_symbol[s] for s in symbols if s in by_symbol]

    # Technicals and company data

    async def _technicals(
        self, ticker: str, load_chart: Callable[[], Awaitable[list[ChartDataPoint]]]
    ) -> TechnicalIndicators:
        thresholds = self.config.analysis.thresholds
        providers = []
        if self.providers.technicals is not None:
            source = self.providers.technicals
            providers.append(
                Provider(
                    name=source.name,
                    fetch=lambda: source.fetch_technicals(ticker),
                    timeout=self.config.providers.technicals_timeout,
                )
            )

        async def local() -> TechnicalIndicators:
            return compute_indicators(await load_chart(), thresholds)

        result = await race_with_fallback(
            providers, is_valid=has_indicators, fallback=local, kind=f"technicals {ticker}"
        )
        indicators = result.value
        if result.used_fallback:
            return indicators

        # Remote indicators carry no trend information; fill it from the chart
        local_view = await local()
        indicators.trend = local_view.trend
        indicators.trend_change_pct = local_view.trend_change_pct
        indicators.volume_trend = local_view.volume_trend
        return indicators

    async def get_technicals(
        self, ticker: str, chart: Optional[list[ChartDataPoint]] = None
    ) -> TechnicalIndicators:
        """Remote RSI/MACD when available, otherwise computed from the chart."""
        ticker = normalize_ticker(ticker)

        async def load_chart() -> list[ChartDataPoint]:
            if chart is not None:
                return chart
            return (await self.get_stock_and_chart(ticker)).chart

        return await self._technicals(ticker, load_chart)

    async def get_company_overview(self, ticker: str) -> Optional[CompanyOverview]:
        """Company profile, or None when no source has one."""
        if self.providers.overview is None:
            return None
        ticker = normalize_ticker(ticker)
        try:
            return await asyncio.wait_for(
                self.providers.overview.fetch_overview(ticker),
                timeout=self.config.providers.overview_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Company overview for {ticker} timed out")
        except Exception as e:
            logger.warning(f"Company overview for {ticker} failed: {e}")
        return None

    async def get_market_overview(self, ticker: str, language: str = "kr") -> MarketOverview:
        """
        Snapshot, news, company profile and technicals in one call.

        Branches run concurrently; a failed branch is left empty rather
        than failing the whole overview.
        """
        ticker = normalize_ticker(ticker)
        snapshot_task = asyncio.ensure_future(self.get_stock_and_chart(ticker))

        async def snapshot() -> StockSnapshot:
            return await snapshot_task

        async def chart() -> list[ChartDataPoint]:
            return (await snapshot_task).chart

        snap, news, company, technicals = await asyncio.gather(
            snapshot(),
            self.news.get_stock_news(ticker, language),
            self.get_company_overview(ticker),
            self._technicals(ticker, chart),
            return_exceptions=True,
        )

        def settled(name: str, value):
            if isinstance(value, BaseException):
                logger.warning(f"Overview branch '{name}' for {ticker} failed: {value}")
                return None
            return value

        return MarketOverview(
            ticker=ticker,
            timestamp=self._now().isoformat(),
            snapshot=settled("snapshot", snap),
            news=settled("news", news) or [],
            company=settled("company", company),
            technicals=settled("technicals", technicals),
        )
