"""
Output formatters for quotes, indices, news and analyses.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from reading_room.data.models import (
    AiAnalysisResult,
    FearGreedReading,
    IndexQuote,
    MarketOverview,
    NewsArticle,
    StockSnapshot,
)
from reading_room.data.tickers import format_price

INDEX_NAMES = {
    "^KS11": "KOSPI",
    "^IXIC": "NASDAQ",
    "^GSPC": "S&P 500",
    "USDKRW=X": "USD/KRW",
}


def _to_data(obj: Any) -> Any:
    if isinstance(obj, list):
        return [_to_data(o) for o in obj]
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return obj


class OutputFormatter(ABC):
    """Base class for output formatters."""

    @abstractmethod
    def format(self, obj: Any) -> str:
        """Format a snapshot, overview, analysis, reading or list of quotes/articles."""
        pass

    def save(self, content: str, path: str | Path) -> None:
        """Save formatted content to file."""
        Path(path).write_text(content, encoding="utf-8")


class TextFormatter(OutputFormatter):
    """Plain text formatter."""

    def format(self, obj: Any) -> str:
        if isinstance(obj, StockSnapshot):
            return self.format_snapshot(obj)
        if isinstance(obj, MarketOverview):
            return self.format_overview(obj)
        if isinstance(obj, AiAnalysisResult):
            return self.format_analysis(obj)
        if isinstance(obj, FearGreedReading):
            return f"Fear & Greed: {obj.value:.0f} ({obj.label}) [{obj.source}]"
        if isinstance(obj, list) and obj and isinstance(obj[0], IndexQuote):
            return self.format_indices(obj)
        if isinstance(obj, list) and obj and isinstance(obj[0], NewsArticle):
            return self.format_news(obj)
        if isinstance(obj, list) and not obj:
            return "(no results)"
        return str(obj)

    def format_snapshot(self, snapshot: StockSnapshot) -> str:
        s = snapshot.stock
        change = s.daily_change
        sign = "+" if change.value > 0 else ""
        lines = [
            "=" * 60,
            f"{s.name} ({s.ticker})  {s.exchange}",
            "=" * 60,
            f"Price:      {format_price(s.current_price, s.ticker)}",
            f"Change:     {sign}{change.value:,.2f} ({sign}{change.percentage:.2f}%)",
            f"Volume:     {s.volume}",
            f"Market cap: {s.market_cap}",
            f"P/E:        {s.pe_ratio if s.pe_ratio is not None else 'N/A'}",
            f"52w range:  {format_price(s.fifty_two_week_low, s.ticker)} - "
            f"{format_price(s.fifty_two_week_high, s.ticker)}",
            f"Chart:      {len(snapshot.chart)} days",
            f"Source:     {snapshot.source}" + (" (simulated)" if snapshot.simulated else ""),
            "=" * 60,
        ]
        return "\n".join(lines)

    def format_indices(self, quotes: list[IndexQuote]) -> str:
        lines = [f"{'Index':<10}{'Price':>12}{'Change':>10}{'%':>8}  Source", "-" * 50]
        for q in quotes:
            name = INDEX_NAMES.get(q.symbol, q.symbol)
            lines.append(
                f"{name:<10}{q.price:>12,.2f}{q.change:>+10.2f}{q.change_percent:>+8.2f}  {q.source}"
            )
        return "\n".join(lines)

    def format_news(self, articles: list[NewsArticle]) -> str:
        lines = []
        for i, a in enumerate(articles, 1):
            tag = f" [{a.category}]" if a.category else ""
            lines.append(f"{i:>2}. {a.title}{tag}")
            lines.append(f"    {a.source} | {a.published_at[:16]} | {a.url}")
        return "\n".join(lines)

    def format_analysis(self, result: AiAnalysisResult) -> str:
        lines = [
            "-" * 60,
            f"Recommendation: {result.recommendation} "
            f"(confidence {result.confidence_score * 100:.0f}%, source: {result.source})",
            f"Risk level:     {result.risk_level or 'N/A'}",
        ]
        targets = [
            ("Short-term target", result.short_term_target),
            ("Long-term target", result.long_term_target),
            ("Buy price", result.buy_price),
            ("Sell price", result.sell_price),
        ]
        lines.extend(f"{label + ':':<16}{value:,.2f}" for label, value in targets if value is not None)
        if result.news_sentiment is not None:
            ns = result.news_sentiment
            lines.append(f"News sentiment: {ns.sentiment} ({ns.confidence_score * 100:.0f}%)")
        lines.extend(["", result.analysis_summary, "-" * 60])
        return "\n".join(lines)

    def format_overview(self, overview: MarketOverview) -> str:
        parts = [f"Overview for {overview.ticker} at {overview.timestamp}"]
        if overview.snapshot is not None:
            parts.append(self.format_snapshot(overview.snapshot))
        if overview.company is not None:
            c = overview.company
            parts.append(f"Company: {c.name or 'N/A'} | {c.sector or 'N/A'} | {c.industry or 'N/A'}")
        if overview.technicals is not None:
            t = overview.technicals
            rsi = f"{t.rsi:.1f}" if t.rsi is not None else "N/A"
            parts.append(
                f"RSI {rsi} ({t.rsi_signal}) | MACD {t.macd_trend} | "
                f"trend {t.trend} ({t.trend_change_pct:+.2f}%) | volume {t.volume_trend}"
            )
        if overview.news:
            parts.append(self.format_news(overview.news))
        return "\n\n".join(parts)


class JSONFormatter(OutputFormatter):
    """JSON formatter."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def format(self, obj: Any) -> str:
        data = {
            "generated_at": datetime.now().isoformat(),
            "data": _to_data(obj),
        }
        return json.dumps(data, indent=self.indent, ensure_ascii=False, default=str)


class CSVFormatter(OutputFormatter):
    """CSV formatter; snapshots export their daily chart."""

    def format(self, obj: Any) -> str:
        if isinstance(obj, StockSnapshot):
            records = [p.to_dict() for p in obj.chart]
            df = pd.DataFrame(records).drop(columns=["range"], errors="ignore")
            return df.to_csv(index=False)
        if isinstance(obj, list):
            return pd.DataFrame([_to_data(o) for o in obj]).to_csv(index=False)
        return pd.DataFrame([_to_data(obj)]).to_csv(index=False)


def get_formatter(name: str) -> OutputFormatter:
    formatters = {"text": TextFormatter, "json": JSONFormatter, "csv": CSVFormatter}
    if name not in formatters:
        raise ValueError(f"Unknown format '{name}', expected one of {', '.join(formatters)}")
    return formatters[name]()
