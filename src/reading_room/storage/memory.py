"""
In-process store, used by default and in tests.
"""

import threading
from typing import Any, Optional

from reading_room.core.logging import get_logger
from reading_room.data.models import AiAnalysisResult, NewsArticle
from reading_room.storage.base import (
    AnalysisHistoryStore,
    NewsStore,
    article_row,
    history_row,
)

logger = get_logger("storage.memory")


class MemoryStore(NewsStore, AnalysisHistoryStore):
    """Dict-backed store; contents vanish with the process."""

    def __init__(self):
        self._articles: list[dict[str, Any]] = []
        self._by_url: dict[str, dict[str, Any]] = {}
        self._history: list[dict[str, Any]] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def _assign_id(self, row: dict[str, Any]) -> dict[str, Any]:
        row["id"] = self._next_id
        self._next_id += 1
        return row

    def save_article(self, article: NewsArticle) -> dict[str, Any]:
        row = article_row(article)
        url = row.get("url")

        with self._lock:
            if url and url in self._by_url:
                logger.debug(f"Article already stored: {url}")
                return dict(self._by_url[url])

            self._assign_id(row)
            self._articles.append(row)
            if url:
                self._by_url[url] = row
            return dict(row)

    def list_articles(
        self, ticker: Optional[str] = None, language: Optional[str] = None, limit: int = 20
    ) -> list[dict[str, Any]]:
        with self._lock:
            rows = [
                dict(r)
                for r in self._articles
                if (ticker is None or r.get("ticker") == ticker)
                and (language is None or r.get("language") == language)
            ]
        rows.sort(key=lambda r: r.get("published_at") or "", reverse=True)
        return rows[:limit]

    def save_analysis(
        self, user_id: str, ticker: Optional[str], result: AiAnalysisResult
    ) -> dict[str, Any]:
        row = history_row(user_id, ticker, result)
        with self._lock:
            self._assign_id(row)
            self._history.append(row)
            return dict(row)

    def list_history(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        with self._lock:
            rows = [dict(r) for r in self._history if r.get("user_id") == user_id]
        rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
        return rows[:limit]
