"""Services that combine providers into dashboard data."""

from reading_room.services.fear_greed import FearGreedService, fear_greed_label
from reading_room.services.market_data import MarketDataService
from reading_room.services.news import NewsService, ensure_news_diversity, remove_duplicate_news
from reading_room.services.registry import ProviderSet, build_providers

__all__ = [
    "FearGreedService",
    "fear_greed_label",
    "MarketDataService",
    "NewsService",
    "ensure_news_diversity",
    "remove_duplicate_news",
    "ProviderSet",
    "build_providers",
]
