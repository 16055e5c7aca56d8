"""
Persistence interfaces.

Only two things are ever stored: news articles (upserted by URL) and
AI analysis history rows.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

from reading_room.core.exceptions import ValidationError
from reading_room.data.models import AiAnalysisResult, NewsArticle


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def article_row(article: NewsArticle) -> dict[str, Any]:
    """
    Validate an article and convert it to a storage row.

    Raises:
        ValidationError: If the title is missing or blank
    """
    title = _clean(article.title)
    if not title:
        raise ValidationError("article title is required", field="title")

    row = {
        "title": title,
        "url": _clean(article.url),
        "published_at": article.published_at,
        "source": _clean(article.source),
        "language": _clean(article.language) or "kr",
        "summary": _clean(article.summary),
        "content": _clean(article.content),
        "ticker": _clean(article.ticker),
        "category": _clean(article.category),
        "sentiment": _clean(article.sentiment),
    }
    return {k: v for k, v in row.items() if v is not None}


def history_row(user_id: str, ticker: Optional[str], result: AiAnalysisResult) -> dict[str, Any]:
    if not user_id or not user_id.strip():
        raise ValidationError("user id is required", field="user_id")

    row = {
        "user_id": user_id.strip(),
        "ticker": ticker,
        "created_at": datetime.now(timezone.utc).isoformat(),
        **result.to_dict(),
    }
    return {k: v for k, v in row.items() if v is not None}


class NewsStore(ABC):
    """Storage for news articles, unique by URL."""

    @abstractmethod
    def save_article(self, article: NewsArticle) -> dict[str, Any]:
        """
        Store an article.

        When an article with the same URL already exists, the stored row
        is returned unchanged. Articles without a URL are always inserted.
        """

    @abstractmethod
    def list_articles(
        self, ticker: Optional[str] = None, language: Optional[str] = None, limit: int = 20
    ) -> list[dict[str, Any]]:
        """Stored articles, newest first."""


class AnalysisHistoryStore(ABC):
    """Append-only storage for analysis results."""

    @abstractmethod
    def save_analysis(
        self, user_id: str, ticker: Optional[str], result: AiAnalysisResult
    ) -> dict[str, Any]:
        """Insert an analysis row and return it."""

    @abstractmethod
    def list_history(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        """A user's analyses, newest first."""
