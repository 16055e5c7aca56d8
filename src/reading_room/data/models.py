"""
Data models for the reading room backend.

All records are transient DTOs produced per request. Only NewsArticle
and AiAnalysisResult are ever persisted.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

import pandas as pd


@dataclass
class DailyChange:
    """Absolute and percentage change against the previous close."""

    value: float = 0.0
    percentage: float = 0.0


@dataclass
class StockData:
    """Quote-level data for a single ticker."""

    ticker: str
    name: str
    exchange: str
    current_price: float
    daily_change: DailyChange = field(default_factory=DailyChange)
    volume: str = "N/A"
    market_cap: str = "N/A"
    pe_ratio: Optional[float] = None
    fifty_two_week_high: float = 0.0
    fifty_two_week_low: float = 0.0
    dividend_yield: Optional[float] = None
    beta: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class ChartDataPoint:
    """Single daily OHLCV bar."""

    date: str  # YYYY-MM-DD
    open: float
    high: float
    low: float
    close: float
    volume: int = 0
    ma20: Optional[float] = None
    ma50: Optional[float] = None

    @property
    def range(self) -> tuple[float, float]:
        return (self.low, self.high)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["range"] = list(self.range)
        return data


def chart_to_frame(chart: list[ChartDataPoint]) -> pd.DataFrame:
    """Convert chart points to a date-indexed OHLCV frame."""
    if not chart:
        return pd.DataFrame(columns=["open", "high", "low", "close", "volume"])

    df = pd.DataFrame(
        [
            {
                "date": p.date,
                "open": p.open,
                "high": p.high,
                "low": p.low,
                "close": p.close,
                "volume": p.volume,
            }
            for p in chart
        ]
    )
    df["date"] = pd.to_datetime(df["date"])
    return df.set_index("date").sort_index()


@dataclass
class StockSnapshot:
    """Stock quote plus chart, tagged with the provider that produced it."""

    stock: StockData
    chart: list[ChartDataPoint] = field(default_factory=list)
    source: str = "unknown"
    simulated: bool = False

    @property
    def ticker(self) -> str:
        return self.stock.ticker

    def to_dict(self) -> dict[str, Any]:
        return {
            "stock": self.stock.to_dict(),
            "chart": [p.to_dict() for p in self.chart],
            "source": self.source,
            "simulated": self.simulated,
        }


@dataclass
class IndexQuote:
    """Quote for a market index or FX pair."""

    symbol: str
    price: float
    change: float = 0.0
    change_percent: float = 0.0
    source: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class NewsArticle:
    """A single news item."""

    title: str
    url: str
    published_at: str  # ISO-8601
    source: str
    language: str = "kr"
    summary: Optional[str] = None
    content: Optional[str] = None
    ticker: Optional[str] = None
    category: Optional[str] = None
    sentiment: Optional[str] = None
    is_generated: bool = False

    @property
    def published_datetime(self) -> Optional[datetime]:
        """Parsed publish time, or None when unparseable."""
        try:
            return datetime.fromisoformat(self.published_at.replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            return None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class NewsSentiment:
    """Coarse sentiment over a set of headlines."""

    sentiment: str = "neutral"  # 'positive', 'negative', 'neutral'
    confidence_score: float = 0.5
    reasoning: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TechnicalIndicators:
    """Technical indicator summary for a ticker."""

    rsi: Optional[float] = None
    macd: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    rsi_signal: str = "N/A"  # 'Overbought', 'Oversold', 'Neutral'
    macd_trend: str = "N/A"  # 'Bullish', 'Bearish'
    trend: str = "sideways"  # 'uptrend', 'downtrend', 'sideways'
    trend_change_pct: float = 0.0
    volume_trend: str = "stable"  # 'increasing', 'decreasing', 'stable'
    source: str = "local"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CompanyOverview:
    """Company profile data."""

    ticker: str
    name: Optional[str] = None
    description: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None
    exchange: Optional[str] = None
    market_cap: Optional[float] = None
    pe_ratio: Optional[float] = None
    dividend_yield: Optional[float] = None
    beta: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    analyst_target_price: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


RECOMMENDATIONS = ("Buy", "Hold", "Sell")
RISK_LEVELS = ("low", "medium", "high")


@dataclass
class AiAnalysisResult:
    """Investment analysis, from the language model or the rule fallback."""

    analysis_summary: str
    recommendation: str  # 'Buy', 'Hold', 'Sell'
    confidence_score: float
    short_term_target: Optional[float] = None
    long_term_target: Optional[float] = None
    buy_price: Optional[float] = None
    sell_price: Optional[float] = None
    risk_level: Optional[str] = None
    source: str = "rules"  # 'llm' or 'rules'
    news_sentiment: Optional[NewsSentiment] = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class FearGreedReading:
    """Fear & Greed index value."""

    value: float
    label: str
    source: str = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class MarketOverview:
    """Composite per-ticker view. Any branch may be missing."""

    ticker: str
    timestamp: str
    snapshot: Optional[StockSnapshot] = None
    news: list[NewsArticle] = field(default_factory=list)
    company: Optional[CompanyOverview] = None
    technicals: Optional[TechnicalIndicators] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ticker": self.ticker,
            "timestamp": self.timestamp,
            "price": self.snapshot.stock.to_dict() if self.snapshot else None,
            "chart": [p.to_dict() for p in self.snapshot.chart] if self.snapshot else [],
            "source": self.snapshot.source if self.snapshot else None,
            "news": [a.to_dict() for a in self.news],
            "company": self.company.to_dict() if self.company else None,
            "technical": self.technicals.to_dict() if self.technicals else None,
        }
