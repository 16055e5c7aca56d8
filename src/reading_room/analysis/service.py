"""
AI investment analysis.

Collects news and indicators, asks the language model for a structured
opinion, and falls back to the rule-based recommendation whenever the
model is missing or misbehaves.
"""

import asyncio
import json
from typing import Any, Optional

from reading_room.analysis.recommendation import risk_level, rule_based_analysis
from reading_room.analysis.sentiment import analyze_sentiment
from reading_room.core.config import AnalysisThresholds
from reading_room.core.exceptions import LLMError
from reading_room.core.logging import get_logger
from reading_room.data.models import (
    RECOMMENDATIONS,
    RISK_LEVELS,
    AiAnalysisResult,
    ChartDataPoint,
    NewsArticle,
    NewsSentiment,
    StockData,
    TechnicalIndicators,
)
from reading_room.data.pricing import to_float
from reading_room.llm.base import LanguageModel, extract_json
from reading_room.services.market_data import MarketDataService
from reading_room.storage.base import AnalysisHistoryStore

logger = get_logger("analysis.service")


def build_prompt(
    stock: StockData,
    chart: list[ChartDataPoint],
    technicals: Optional[TechnicalIndicators],
    sentiment: NewsSentiment,
    titles: list[str],
    language: str,
) -> str:
    chart_rows = [{"date": p.date, "close": p.close, "volume": p.volume} for p in chart]
    language_note = "Write analysisSummary in Korean." if language == "kr" else (
        "Write analysisSummary in English."
    )
    sections = [
        "You are an equity analyst. Assess the stock below and give an investment opinion.",
        language_note,
        f"Stock data:\n{json.dumps(stock.to_dict(), ensure_ascii=False)}",
        f"Daily chart (oldest first):\n{json.dumps(chart_rows)}",
    ]
    if technicals is not None:
        sections.append(f"Technical indicators:\n{json.dumps(technicals.to_dict())}")
    sections.append(f"News sentiment:\n{json.dumps(sentiment.to_dict(), ensure_ascii=False)}")
    if titles:
        sections.append("Recent headlines:\n" + "\n".join(f"- {t}" for t in titles[:20]))
    sections.append(
        "Respond with JSON only: "
        '{"analysisSummary": "...", "recommendation": "Buy|Hold|Sell", '
        '"confidenceScore": 0.0-1.0, "shortTermTarget": number, "longTermTarget": number, '
        '"buyPrice": number, "sellPrice": number, "riskLevel": "low|medium|high"}'
    )
    return "\n\n".join(sections)


def parse_analysis(
    model: str,
    data: dict[str, Any],
    stock: StockData,
    thresholds: AnalysisThresholds,
) -> AiAnalysisResult:
    """Validate the model's JSON; confidence is clamped to 0..1."""
    summary = str(data.get("analysisSummary") or "").strip()
    if not summary:
        raise LLMError(model, "analysisSummary missing")

    recommendation = str(data.get("recommendation") or "").strip().capitalize()
    if recommendation not in RECOMMENDATIONS:
        raise LLMError(model, f"invalid recommendation '{data.get('recommendation')}'")

    confidence = to_float(data.get("confidenceScore"))
    if confidence is None:
        raise LLMError(model, "confidenceScore missing")

    risk = str(data.get("riskLevel") or "").strip().lower()
    if risk not in RISK_LEVELS:
        risk = risk_level(stock.beta, thresholds)

    return AiAnalysisResult(
        analysis_summary=summary,
        recommendation=recommendation,
        confidence_score=max(0.0, min(1.0, confidence)),
        short_term_target=to_float(data.get("shortTermTarget")),
        long_term_target=to_float(data.get("longTermTarget")),
        buy_price=to_float(data.get("buyPrice")),
        sell_price=to_float(data.get("sellPrice")),
        risk_level=risk,
        source="llm",
    )


class AnalysisService:
    """Stock analysis on top of the market data and news services."""

    def __init__(
        self,
        market: MarketDataService,
        llm: Optional[LanguageModel] = None,
        store: Optional[AnalysisHistoryStore] = None,
        thresholds: Optional[AnalysisThresholds] = None,
    ):
        self.market = market
        self.llm = llm
        self.store = store
        self.thresholds = thresholds or market.config.analysis.thresholds

    async def _collect(
        self, stock: StockData, chart: list[ChartDataPoint], language: str
    ) -> tuple[list[NewsArticle], list[NewsArticle], Optional[TechnicalIndicators]]:
        stock_news, market_news, technicals = await asyncio.gather(
            self.market.news.get_stock_news(stock.ticker, language),
            self.market.news.get_market_news(language),
            self.market.get_technicals(stock.ticker, chart),
            return_exceptions=True,
        )
        if isinstance(stock_news, BaseException):
            logger.warning(f"Stock news unavailable: {stock_news}")
            stock_news = []
        if isinstance(market_news, BaseException):
            logger.warning(f"Market news unavailable: {market_news}")
            market_news = []
        if isinstance(technicals, BaseException):
            logger.warning(f"Technical indicators unavailable: {technicals}")
            technicals = None
        return stock_news, market_news, technicals

    async def analyze(
        self, stock: StockData, chart: list[ChartDataPoint], language: str = "kr"
    ) -> AiAnalysisResult:
        """
        Analysis for a stock; never raises for model or data failures.

        The result's `source` is "llm" when the model answered with valid
        JSON and "rules" otherwise.
        """
        stock_news, market_news, technicals = await self._collect(stock, chart, language)
        titles = [a.title for a in stock_news + market_news if a.title]
        logger.info(
            f"Analyzing {stock.ticker} with {len(stock_news)} stock and "
            f"{len(market_news)} market articles"
        )

        sentiment = await analyze_sentiment(titles, language, self.llm, self.thresholds)

        result: Optional[AiAnalysisResult] = None
        if self.llm is not None:
            recent = chart[-self.thresholds.llm_chart_points:]
            prompt = build_prompt(stock, recent, technicals, sentiment, titles, language)
            try:
                data = extract_json(self.llm.model, await self.llm.generate(prompt))
                result = parse_analysis(self.llm.model, data, stock, self.thresholds)
            except LLMError as e:
                logger.warning(f"Model analysis failed for {stock.ticker}, using rules: {e}")

        if result is None:
            result = rule_based_analysis(stock, language, technicals, sentiment, self.thresholds)

        result.news_sentiment = sentiment
        return result

    async def analyze_ticker(self, ticker: str, language: str = "kr") -> AiAnalysisResult:
        snapshot = await self.market.get_stock_and_chart(ticker)
        return await self.analyze(snapshot.stock, snapshot.chart, language)

    async def save_to_history(
        self, user_id: str, result: AiAnalysisResult, ticker: Optional[str] = None
    ) -> Optional[dict[str, Any]]:
        """Persist a result; returns the stored row, or None on any failure."""
        if self.store is None:
            logger.warning("No analysis history store configured")
            return None
        try:
            return await asyncio.to_thread(self.store.save_analysis, user_id, ticker, result)
        except Exception as e:
            logger.warning(f"Could not save analysis for user {user_id}: {e}")
            return None
