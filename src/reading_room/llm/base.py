"""
Language model interface and response parsing.
"""

import json
import re
from abc import ABC, abstractmethod
from typing import Any

from reading_room.core.exceptions import LLMError

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class LanguageModel(ABC):
    """Text-in, text-out generative model."""

    model: str = "unknown"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Generate a completion for the prompt.

        Raises:
            LLMError: If the call fails or returns no text
        """


def extract_json(model: str, text: str) -> dict[str, Any]:
    """
    Pull a JSON object out of a model response.

    Models often wrap JSON in a markdown fence or add a sentence before
    it; the first {...} block is used.
    """
    if not text:
        raise LLMError(model, "empty response")

    fenced = _FENCE.search(text)
    candidate = fenced.group(1) if fenced else text

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end <= start:
        raise LLMError(model, "no JSON object in response")

    try:
        data = json.loads(candidate[start:end + 1])
    except json.JSONDecodeError as e:
        raise LLMError(model, f"invalid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise LLMError(model, "JSON response is not an object")
    return data
