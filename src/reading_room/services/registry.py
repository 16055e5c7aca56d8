"""
Provider construction and cascade planning.

Every concrete provider is built here from configuration, sharing one
httpx client. Services receive the resulting ProviderSet and turn the
configured order and timeouts into cascade plans.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol

import httpx

from reading_room.core.config import AppConfig, ProviderSettings
from reading_room.fetch.cascade import Provider
from reading_room.providers.alpha_vantage import AlphaVantageProvider
from reading_room.providers.base import IndexQuoteProvider, NewsProvider, StockDataProvider
from reading_room.providers.dunamu import DunamuForexProvider
from reading_room.providers.fear_greed import (
    AlternativeMeSource,
    CNNFearGreedSource,
    VIXFearGreedSource,
)
from reading_room.providers.finnhub import FinnhubProvider
from reading_room.providers.fmp import FMPProvider
from reading_room.providers.http import create_client
from reading_room.providers.kis import KISProvider
from reading_room.providers.rss import RSSNewsProvider
from reading_room.providers.yahoo import YahooFinanceProvider


class FearGreedSource(Protocol):
    name: str

    async def fetch_value(self) -> float: ...


class TechnicalsSource(Protocol):
    name: str

    async def fetch_technicals(self, ticker: str) -> Any: ...


class OverviewSource(Protocol):
    name: str

    async def fetch_overview(self, ticker: str) -> Any: ...


@dataclass
class ProviderSet:
    """All providers a set of services draws from, keyed by config name."""

    stock: dict[str, StockDataProvider] = field(default_factory=dict)
    indices: dict[str, IndexQuoteProvider] = field(default_factory=dict)
    forex: Optional[IndexQuoteProvider] = None
    news: dict[str, NewsProvider] = field(default_factory=dict)
    market_news: dict[str, NewsProvider] = field(default_factory=dict)  # by language
    fear_greed: dict[str, FearGreedSource] = field(default_factory=dict)
    technicals: Optional[TechnicalsSource] = None
    overview: Optional[OverviewSource] = None
    client: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()


def build_providers(
    config: AppConfig,
    client: Optional[httpx.AsyncClient] = None,
) -> ProviderSet:
    """Instantiate every provider the configuration knows about."""
    client = client or create_client()
    keys = config.api_keys
    feeds = config.news.feeds
    thresholds = config.analysis.thresholds

    yahoo = YahooFinanceProvider()
    fmp = FMPProvider(client, keys.fmp)
    alpha_vantage = AlphaVantageProvider(
        client,
        keys.alpha_vantage,
        rsi_overbought=thresholds.rsi_overbought,
        rsi_oversold=thresholds.rsi_oversold,
    )

    return ProviderSet(
        stock={
            "yahoo": yahoo,
            "kis": KISProvider(client, keys.kis.app_key, keys.kis.app_secret, keys.kis.base_url),
            "fmp": fmp,
            "finnhub": FinnhubProvider(client, keys.finnhub),
            "alpha_vantage": alpha_vantage,
        },
        indices={"yahoo": yahoo, "fmp": fmp},
        forex=DunamuForexProvider(client),
        news={
            "yahoo": yahoo,
            "alpha_vantage": alpha_vantage,
            "marketwatch_rss": RSSNewsProvider(
                client, "marketwatch_rss", [feeds.marketwatch], "MarketWatch", "en"
            ),
            "ft_rss": RSSNewsProvider(client, "ft_rss", [feeds.ft], "Financial Times", "en"),
            "korean_stock_rss": RSSNewsProvider(
                client, "korean_stock_rss", [feeds.korean_stock], "한국경제", "kr"
            ),
            "korean_financial_rss": RSSNewsProvider(
                client, "korean_financial_rss", [feeds.korean_financial], "매일경제", "kr"
            ),
        },
        market_news={
            "en": RSSNewsProvider(
                client, "market_rss_en", feeds.market_en, "", "en", match_query=False
            ),
            "kr": RSSNewsProvider(
                client, "market_rss_kr", feeds.market_kr, "", "kr", match_query=False
            ),
        },
        fear_greed={
            "cnn": CNNFearGreedSource(client),
            "alternative_me": AlternativeMeSource(client),
            "vix": VIXFearGreedSource(yahoo),
        },
        technicals=alpha_vantage,
        overview=alpha_vantage,
        client=client,
    )


def plan(
    settings: Mapping[str, ProviderSettings],
    fetchers: Mapping[str, Callable[[], Awaitable[Any]]],
) -> list[Provider[Any]]:
    """
    Cascade entries in configured order.

    Disabled entries and names with no fetcher are skipped.
    """
    providers = []
    for name, entry in settings.items():
        if not entry.enabled or name not in fetchers:
            continue
        providers.append(
            Provider(name=name, fetch=fetchers[name], timeout=entry.timeout, priority=entry.priority)
        )
    return providers
