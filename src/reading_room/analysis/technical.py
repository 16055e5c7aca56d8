"""
Technical indicators computed locally from chart data.
"""

import math
from typing import Optional

import numpy as np
import pandas as pd

from reading_room.core.config import AnalysisThresholds
from reading_room.data.models import ChartDataPoint, TechnicalIndicators, chart_to_frame


def _last(series: pd.Series) -> Optional[float]:
    if series is None or len(series) == 0:
        return None
    value = float(series.iloc[-1])
    return None if math.isnan(value) else value


def compute_rsi(close: pd.Series, period: int = 14) -> Optional[float]:
    """RSI over exponentially weighted average gains and losses."""
    if len(close) < period + 1:
        return None

    delta = close.diff()
    gain = delta.where(delta > 0, 0.0)
    loss = -delta.where(delta < 0, 0.0)

    avg_gain = gain.ewm(span=period, adjust=False).mean()
    avg_loss = loss.ewm(span=period, adjust=False).mean()

    # No losses in the window: RSI is pinned at 100
    rs = avg_gain / avg_loss.replace(0, np.nan)
    rsi = (100 - (100 / (1 + rs))).where(avg_loss > 0, 100.0)
    return _last(rsi)


def compute_macd(
    close: pd.Series, fast: int = 12, slow: int = 26, signal: int = 9
) -> dict[str, float]:
    """MACD line, signal line and histogram; empty when history is too short."""
    if len(close) < slow + signal:
        return {}

    ema_fast = close.ewm(span=fast, adjust=False).mean()
    ema_slow = close.ewm(span=slow, adjust=False).mean()

    macd_line = ema_fast - ema_slow
    signal_line = macd_line.ewm(span=signal, adjust=False).mean()
    histogram = macd_line - signal_line

    return {
        "macd": macd_line.iloc[-1],
        "macd_signal": signal_line.iloc[-1],
        "macd_histogram": histogram.iloc[-1],
    }


def chart_trend(close: pd.Series, window: int = 10, threshold_pct: float = 2.0) -> tuple[str, float]:
    """Direction of the last `window` closes: (trend, change %)."""
    recent = close.iloc[-window:]
    if len(recent) < 2 or recent.iloc[0] <= 0:
        return "sideways", 0.0

    change_pct = float((recent.iloc[-1] - recent.iloc[0]) / recent.iloc[0] * 100)
    if change_pct > threshold_pct:
        return "uptrend", change_pct
    if change_pct < -threshold_pct:
        return "downtrend", change_pct
    return "sideways", change_pct


def volume_trend(
    volume: pd.Series,
    short_window: int = 5,
    long_window: int = 20,
    increasing_ratio: float = 1.2,
    decreasing_ratio: float = 0.8,
) -> str:
    """Recent average volume against the average of the bars before it."""
    if len(volume) < short_window + 1:
        return "stable"

    recent = volume.iloc[-short_window:].mean()
    previous = volume.iloc[-(short_window + long_window):-short_window].mean()
    if not previous or math.isnan(previous):
        return "stable"

    ratio = recent / previous
    if ratio > increasing_ratio:
        return "increasing"
    if ratio < decreasing_ratio:
        return "decreasing"
    return "stable"


def rsi_label(rsi: Optional[float], thresholds: AnalysisThresholds) -> str:
    if rsi is None:
        return "N/A"
    if rsi > thresholds.rsi_overbought:
        return "Overbought"
    if rsi < thresholds.rsi_oversold:
        return "Oversold"
    return "Neutral"


def compute_indicators(
    chart: list[ChartDataPoint],
    thresholds: Optional[AnalysisThresholds] = None,
) -> TechnicalIndicators:
    """
    RSI, MACD, price trend and volume trend for a daily chart.

    Indicators that need more history than the chart has are left as
    None; the trend fields always have a value.
    """
    thresholds = thresholds or AnalysisThresholds()
    df = chart_to_frame(chart)
    indicators = TechnicalIndicators(source="local")
    if df.empty:
        return indicators

    close = df["close"].astype(float)

    indicators.rsi = compute_rsi(close, thresholds.rsi_period)
    if indicators.rsi is not None:
        indicators.rsi = round(indicators.rsi, 2)
    indicators.rsi_signal = rsi_label(indicators.rsi, thresholds)

    macd = compute_macd(close, thresholds.macd_fast, thresholds.macd_slow, thresholds.macd_signal)
    if macd:
        indicators.macd = round(float(macd["macd"]), 4)
        indicators.macd_signal = round(float(macd["macd_signal"]), 4)
        indicators.macd_histogram = round(float(macd["macd_histogram"]), 4)
        indicators.macd_trend = "Bullish" if indicators.macd > indicators.macd_signal else "Bearish"

    trend, change_pct = chart_trend(close, thresholds.trend_window, thresholds.trend_pct)
    indicators.trend = trend
    indicators.trend_change_pct = round(change_pct, 2)

    indicators.volume_trend = volume_trend(
        df["volume"].astype(float),
        thresholds.volume_short_window,
        thresholds.volume_long_window,
        thresholds.volume_increasing_ratio,
        thresholds.volume_decreasing_ratio,
    )
    return indicators
