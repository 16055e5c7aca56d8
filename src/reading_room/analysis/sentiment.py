"""
Headline sentiment: language model first, keyword counting as fallback.
"""

from typing import Optional, Sequence

from reading_room.core.config import AnalysisThresholds
from reading_room.core.exceptions import LLMError
from reading_room.core.logging import get_logger
from reading_room.data.models import NewsSentiment
from reading_room.llm.base import LanguageModel, extract_json

logger = get_logger("analysis.sentiment")

SENTIMENTS = ("positive", "negative", "neutral")


def keyword_sentiment(
    titles: Sequence[str],
    language: str = "en",
    thresholds: Optional[AnalysisThresholds] = None,
) -> NewsSentiment:
    """Count positive and negative keywords across the titles."""
    thresholds = thresholds or AnalysisThresholds()
    if not titles:
        reasoning = "분석할 뉴스가 없습니다." if language == "kr" else "No news to analyze."
        return NewsSentiment("neutral", 0.5, reasoning)

    positive = 0
    negative = 0
    for title in titles:
        text = title.lower()
        positive += sum(1 for word in thresholds.positive_keywords if word.lower() in text)
        negative += sum(1 for word in thresholds.negative_keywords if word.lower() in text)

    ratio = thresholds.sentiment_ratio
    if positive > negative * ratio:
        sentiment, count = "positive", positive
    elif negative > positive * ratio:
        sentiment, count = "negative", negative
    else:
        sentiment, count = "neutral", 0

    if sentiment == "neutral":
        confidence = 0.5
    else:
        confidence = min(thresholds.sentiment_max_confidence, 0.5 + count / len(titles) * 0.5)

    if language == "kr":
        reasoning = f"키워드 분석: 긍정 {positive}개, 부정 {negative}개"
    else:
        reasoning = f"Keyword analysis: {positive} positive, {negative} negative"
    return NewsSentiment(sentiment, round(confidence, 2), reasoning)


def _sentiment_prompt(titles: Sequence[str], language: str) -> str:
    headlines = "\n".join(f"- {t}" for t in titles[:30])
    if language == "kr":
        instruction = (
            "다음 뉴스 헤드라인들의 전반적인 투자 심리를 분석하세요. "
            "reasoning은 한국어로 작성하세요."
        )
    else:
        instruction = "Assess the overall investor sentiment of these news headlines."
    return (
        f"{instruction}\n\n{headlines}\n\n"
        "Respond with JSON only: "
        '{"sentiment": "positive|negative|neutral", "confidenceScore": 0.0-1.0, '
        '"reasoning": "..."}'
    )


async def analyze_sentiment(
    titles: Sequence[str],
    language: str = "en",
    llm: Optional[LanguageModel] = None,
    thresholds: Optional[AnalysisThresholds] = None,
) -> NewsSentiment:
    """
    Sentiment over a list of headlines.

    Never raises: any model failure falls back to keyword counting.
    """
    if not titles or llm is None:
        return keyword_sentiment(titles, language, thresholds)

    try:
        data = extract_json(llm.model, await llm.generate(_sentiment_prompt(titles, language)))
        sentiment = str(data.get("sentiment", "")).lower()
        if sentiment not in SENTIMENTS:
            raise LLMError(llm.model, f"unknown sentiment '{sentiment}'")
        confidence = float(data.get("confidenceScore", 0.5))
        return NewsSentiment(
            sentiment=sentiment,
            confidence_score=max(0.0, min(1.0, confidence)),
            reasoning=str(data.get("reasoning", "")),
        )
    except (LLMError, TypeError, ValueError) as e:
        logger.warning(f"Sentiment model failed, using keywords: {e}")
        return keyword_sentiment(titles, language, thresholds)
