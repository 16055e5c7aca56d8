"""
Supabase-backed store.

The supabase client is synchronous; async callers run these methods in a
worker thread.
"""

from typing import Any, Optional

from supabase import Client, create_client

from reading_room.core.exceptions import ConfigError, StorageError
from reading_room.core.logging import get_logger
from reading_room.data.models import AiAnalysisResult, NewsArticle
from reading_room.storage.base import (
    AnalysisHistoryStore,
    NewsStore,
    article_row,
    history_row,
)

logger = get_logger("storage.supabase")


class SupabaseStore(NewsStore, AnalysisHistoryStore):
    """news_articles and ai_analysis_history tables in Supabase."""

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        news_table: str = "news_articles",
        history_table: str = "ai_analysis_history",
        client: Optional[Client] = None,
    ):
        if client is None:
            if not url or not key:
                raise ConfigError("supabase url and key are required", key="storage.supabase_url")
            client = create_client(url, key)
        self.client = client
        self.news_table = news_table
        self.history_table = history_table

    def _first(self, response: Any) -> Optional[dict[str, Any]]:
        data = getattr(response, "data", None) or []
        return data[0] if data else None

    def save_article(self, article: NewsArticle) -> dict[str, Any]:
        row = article_row(article)
        url = row.get("url")

        try:
            if url:
                existing = self._first(
                    self.client.table(self.news_table).select("*").eq("url", url).limit(1).execute()
                )
                if existing:
                    logger.debug(f"Article already stored: {url}")
                    return existing
                response = (
                    self.client.table(self.news_table).upsert(row, on_conflict="url").execute()
                )
            else:
                response = self.client.table(self.news_table).insert(row).execute()
        except Exception as e:
            raise StorageError(str(e), table=self.news_table) from e

        return self._first(response) or row

    def list_articles(
        self, ticker: Optional[str] = None, language: Optional[str] = None, limit: int = 20
    ) -> list[dict[str, Any]]:
        try:
            query = self.client.table(self.news_table).select("*")
            if ticker:
                query = query.eq("ticker", ticker)
            if language:
                query = query.eq("language", language)
            response = query.order("published_at", desc=True).limit(limit).execute()
        except Exception as e:
            raise StorageError(str(e), table=self.news_table) from e
        return list(response.data or [])

    def save_analysis(
        self, user_id: str, ticker: Optional[str], result: AiAnalysisResult
    ) -> dict[str, Any]:
        row = history_row(user_id, ticker, result)
        try:
            response = self.client.table(self.history_table).insert(row).execute()
        except Exception as e:
            raise StorageError(str(e), table=self.history_table) from e
        return self._first(response) or row

    def list_history(self, user_id: str, limit: int = 20) -> list[dict[str, Any]]:
        try:
            response = (
                self.client.table(self.history_table)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            raise StorageError(str(e), table=self.history_table) from e
        return list(response.data or [])
