"""Generative model access."""

from typing import Optional

from reading_room.core.config import LLMConfig
from reading_room.core.logging import get_logger
from reading_room.llm.base import LanguageModel, extract_json

logger = get_logger("llm")


def create_model(config: Optional[LLMConfig] = None) -> Optional[LanguageModel]:
    """Configured model, or None when disabled or without an API key."""
    config = config or LLMConfig()
    if not config.enabled or not config.api_key:
        logger.info("No language model configured, analysis uses the rule fallback")
        return None

    from reading_room.llm.gemini import GeminiModel

    return GeminiModel(config)


__all__ = ["LanguageModel", "create_model", "extract_json"]
