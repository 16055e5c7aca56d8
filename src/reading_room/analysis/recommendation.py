"""
Rule-based investment recommendation.

Used whenever the language model is unavailable or returns something
unusable. The rules are heuristics; every threshold comes from
AnalysisThresholds.
"""

from typing import Optional

from reading_room.core.config import AnalysisThresholds
from reading_room.data.models import (
    AiAnalysisResult,
    NewsSentiment,
    StockData,
    TechnicalIndicators,
)
from reading_room.data.tickers import format_price

_SUMMARY_TAIL = {
    "kr": {
        "Buy": "최근 상승세와 합리적인 P/E 비율({pe})을 고려할 때 매수를 추천합니다. "
               "단, 시장 전반의 변동성을 주의하시기 바랍니다.",
        "Sell": "최근 하락세와 높은 밸류에이션을 고려할 때 매도를 검토하는 것이 좋겠습니다. "
                "추가 하락 리스크에 대비하시기 바랍니다.",
        "Hold": "현재 시장 상황을 고려할 때 관망하며 추가적인 시그널을 기다리는 것을 추천합니다. "
                "단기적인 변동성에 주의하시기 바랍니다.",
    },
    "en": {
        "Buy": "Considering the recent upward momentum and reasonable P/E ratio ({pe}), "
               "a buy recommendation is suggested. However, please be aware of overall "
               "market volatility.",
        "Sell": "Given the recent downtrend and high valuation metrics, it may be prudent to "
                "consider selling. Be prepared for potential further downside risk.",
        "Hold": "Based on current market conditions, it's recommended to hold and wait for "
                "clearer signals. Please be cautious of short-term volatility.",
    },
}


def base_recommendation(
    change_pct: float, pe_ratio: Optional[float], thresholds: AnalysisThresholds
) -> tuple[str, float]:
    """
    Recommendation and confidence from the daily change and P/E alone.

    A missing P/E counts as 0, so it never blocks a Buy and never forces
    a Sell.
    """
    pe = pe_ratio or 0.0
    if change_pct > thresholds.buy_change_pct and pe < thresholds.buy_max_pe:
        return "Buy", thresholds.buy_confidence
    if change_pct < thresholds.sell_change_pct or pe > thresholds.sell_min_pe:
        return "Sell", thresholds.sell_confidence
    return "Hold", thresholds.hold_confidence


def adjust_confidence(
    recommendation: str,
    confidence: float,
    thresholds: AnalysisThresholds,
    technicals: Optional[TechnicalIndicators] = None,
    sentiment: Optional[NewsSentiment] = None,
) -> float:
    """Nudge confidence when RSI or news sentiment agree or disagree with the call."""
    if recommendation != "Hold":
        direction = 1 if recommendation == "Buy" else -1

        if technicals is not None and technicals.rsi_signal in ("Overbought", "Oversold"):
            # Oversold supports buying, overbought supports selling
            supports = 1 if technicals.rsi_signal == "Oversold" else -1
            confidence += thresholds.rsi_confidence_adjustment * supports * direction

        if sentiment is not None and sentiment.sentiment != "neutral":
            supports = 1 if sentiment.sentiment == "positive" else -1
            confidence += thresholds.sentiment_confidence_adjustment * supports * direction

    return round(max(thresholds.min_confidence, min(thresholds.max_confidence, confidence)), 2)


def risk_level(beta: Optional[float], thresholds: AnalysisThresholds) -> str:
    if beta is None:
        return "medium"
    if beta < thresholds.low_risk_beta:
        return "low"
    if beta > thresholds.high_risk_beta:
        return "high"
    return "medium"


def _summary(stock: StockData, recommendation: str, language: str) -> str:
    change = stock.daily_change.percentage
    sign = "+" if change > 0 else ""
    price = format_price(stock.current_price, stock.ticker)
    pe = stock.pe_ratio if stock.pe_ratio is not None else 0

    if language == "kr":
        head = (
            f"{stock.name}({stock.ticker})의 현재 주가는 {price}이며, "
            f"일일 변동률은 {sign}{change:.2f}%입니다. "
        )
    else:
        head = (
            f"{stock.name} ({stock.ticker}) is currently trading at {price} "
            f"with a daily change of {sign}{change:.2f}%. "
        )
    tails = _SUMMARY_TAIL["kr" if language == "kr" else "en"]
    return head + tails[recommendation].format(pe=pe)


def rule_based_analysis(
    stock: StockData,
    language: str = "kr",
    technicals: Optional[TechnicalIndicators] = None,
    sentiment: Optional[NewsSentiment] = None,
    thresholds: Optional[AnalysisThresholds] = None,
) -> AiAnalysisResult:
    thresholds = thresholds or AnalysisThresholds()

    recommendation, confidence = base_recommendation(
        stock.daily_change.percentage, stock.pe_ratio, thresholds
    )
    confidence = adjust_confidence(recommendation, confidence, thresholds, technicals, sentiment)

    return AiAnalysisResult(
        analysis_summary=_summary(stock, recommendation, language),
        recommendation=recommendation,
        confidence_score=confidence,
        risk_level=risk_level(stock.beta, thresholds),
        source="rules",
    )
