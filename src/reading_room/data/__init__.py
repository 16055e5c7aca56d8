"""Data models, pricing rules, ticker helpers and caching."""

from reading_room.data.cache import DataCache
from reading_room.data.models import (
    AiAnalysisResult,
    ChartDataPoint,
    CompanyOverview,
    DailyChange,
    FearGreedReading,
    IndexQuote,
    MarketOverview,
    NewsArticle,
    NewsSentiment,
    StockData,
    StockSnapshot,
    TechnicalIndicators,
)
from reading_room.data.pricing import calculate_daily_change

__all__ = [
    "DataCache",
    "AiAnalysisResult",
    "ChartDataPoint",
    "CompanyOverview",
    "DailyChange",
    "FearGreedReading",
    "IndexQuote",
    "MarketOverview",
    "NewsArticle",
    "NewsSentiment",
    "StockData",
    "StockSnapshot",
    "TechnicalIndicators",
    "calculate_daily_change",
]
