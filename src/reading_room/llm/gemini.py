"""
Gemini through the google-genai SDK.
"""

import asyncio
from typing import Any, Optional

from google import genai
from google.genai import types

from reading_room.core.config import LLMConfig
from reading_room.core.exceptions import ConfigError, LLMError
from reading_room.core.logging import get_logger
from reading_room.llm.base import LanguageModel

logger = get_logger("llm.gemini")


class GeminiModel(LanguageModel):
    """
    google-genai client wrapper.

    The SDK call is blocking and runs in a worker thread; on timeout the
    thread is left to finish and its result is discarded.
    """

    def __init__(self, config: Optional[LLMConfig] = None, client: Optional[Any] = None):
        self.config = config or LLMConfig()
        self.model = self.config.model
        if client is None:
            if not self.config.api_key:
                raise ConfigError("Gemini API key is not set", key="llm.api_key")
            client = genai.Client(api_key=self.config.api_key)
        self.client = client

    def _generation_config(self) -> types.GenerateContentConfig:
        tools = None
        if self.config.search_grounding:
            tools = [types.Tool(google_search=types.GoogleSearch())]
        return types.GenerateContentConfig(temperature=self.config.temperature, tools=tools)

    def _generate_sync(self, prompt: str) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=self._generation_config(),
        )
        return getattr(response, "text", None) or ""

    async def generate(self, prompt: str) -> str:
        logger.debug(f"Calling {self.model} ({len(prompt)} chars)")
        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._generate_sync, prompt), timeout=self.config.timeout
            )
        except asyncio.TimeoutError:
            raise LLMError(self.model, f"timed out after {self.config.timeout:g}s") from None
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(self.model, f"{type(e).__name__}: {e}") from e

        if not text.strip():
            raise LLMError(self.model, "empty response")
        return text
