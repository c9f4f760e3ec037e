"""Abstract base class for LLM clients."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any


@dataclass
class LLMResponse:
    """Response from an LLM API call."""
    text: str
    stop_reason: str = "end_turn"
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    raw_response: Any = None


class LLMClient(ABC):
    """Abstract base for LLM API clients."""

    @abstractmethod
    def generate(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 8192,
        temperature: float = 0.0,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        ...

    def stream(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 8192,
        temperature: float = 0.0,
    ) -> Iterator[str]:
        """Yield response text in chunks.

        Clients without native streaming yield the whole response once.
        """
        yield self.generate(messages, system=system, max_tokens=max_tokens, temperature=temperature).text


def strip_thinking(text: str) -> str:
    """Remove <think>...</think> blocks from model output."""
    return re.sub(r"<think>.*?</think>\s*", "", text, flags=re.DOTALL).strip()
