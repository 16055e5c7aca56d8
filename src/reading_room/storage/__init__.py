"""News and analysis-history persistence."""

from typing import Optional

from reading_room.core.config import StorageConfig
from reading_room.core.exceptions import ConfigError
from reading_room.storage.base import AnalysisHistoryStore, NewsStore
from reading_room.storage.memory import MemoryStore


def create_store(config: Optional[StorageConfig] = None) -> NewsStore:
    """Build the store named by the storage backend setting.

    Both backends implement NewsStore and AnalysisHistoryStore.
    """
    config = config or StorageConfig()
    if config.backend == "memory":
        return MemoryStore()
    if config.backend == "supabase":
        from reading_room.storage.supabase_store import SupabaseStore

        return SupabaseStore(
            url=config.supabase_url,
            key=config.supabase_key,
            news_table=config.news_table,
            history_table=config.history_table,
        )
    raise ConfigError(f"unknown backend '{config.backend}'", key="storage.backend")


__all__ = ["AnalysisHistoryStore", "NewsStore", "MemoryStore", "create_store"]
