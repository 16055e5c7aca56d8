"""Market data, news and sentiment-index providers."""

from reading_room.providers.base import (
    IndexQuoteProvider,
    NewsProvider,
    StockDataProvider,
    build_snapshot,
)
from reading_room.providers.alpha_vantage import AlphaVantageProvider
from reading_room.providers.dunamu import DunamuForexProvider
from reading_room.providers.fear_greed import (
    AlternativeMeSource,
    CNNFearGreedSource,
    VIXFearGreedSource,
    vix_to_fear_greed,
)
from reading_room.providers.finnhub import FinnhubProvider
from reading_room.providers.fmp import FMPProvider
from reading_room.providers.http import create_client
from reading_room.providers.kis import KISProvider
from reading_room.providers.rss import RSSNewsProvider
from reading_room.providers.yahoo import YahooFinanceProvider

__all__ = [
    "IndexQuoteProvider",
    "NewsProvider",
    "StockDataProvider",
    "build_snapshot",
    "AlphaVantageProvider",
    "DunamuForexProvider",
    "AlternativeMeSource",
    "CNNFearGreedSource",
    "VIXFearGreedSource",
    "vix_to_fear_greed",
    "FinnhubProvider",
    "FMPProvider",
    "create_client",
    "KISProvider",
    "RSSNewsProvider",
    "YahooFinanceProvider",
]
