"""OpenAI-compatible LLM client.

Serves OpenAI itself plus any server speaking the chat completions API:
Gemini's OpenAI endpoint, OpenRouter, vLLM and other local servers.
Reasoning models may leak ``<think>`` blocks into content; those are
stripped so downstream JSON extraction sees only the answer.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from openai import OpenAI

from .base import LLMClient, LLMResponse, strip_thinking

OPENAI_BASE_URL = "https://api.openai.com/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
LOCAL_BASE_URL = "http://localhost:8000/v1"


class OpenAICompatClient(LLMClient):
    """OpenAI-compatible chat completions client."""

    def __init__(
        self,
        model: str,
        base_url: str = OPENAI_BASE_URL,
        api_key: str = "dummy",
    ):
        self.model = model
        self.base_url = base_url
        self.client = OpenAI(base_url=base_url, api_key=api_key)

    def _messages(self, messages: list[dict[str, Any]], system: str) -> list[dict[str, Any]]:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for msg in messages:
            content = msg.get("content", "")
            if isinstance(content, list):
                content = "\n".join(
                    b.get("text", "") for b in content if isinstance(b, dict) and b.get("type") == "text"
                )
            oai_messages.append({"role": msg["role"], "content": content})
        return oai_messages

    def generate(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 8192,
        temperature: float = 0.0,
    ) -> LLMResponse:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=self._messages(messages, system),
            max_tokens=max_tokens,
            temperature=temperature,
        )
        choice = response.choices[0]
        text = strip_thinking(choice.message.content or "")

        stop_reason = "end_turn"
        if choice.finish_reason == "length":
            stop_reason = "max_tokens"

        usage = response.usage
        return LLMResponse(
            text=text,
            stop_reason=stop_reason,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self.model,
            raw_response=response,
        )

    def stream(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 8192,
        temperature: float = 0.0,
    ) -> Iterator[str]:
        chunks = self.client.chat.completions.create(
            model=self.model,
            messages=self._messages(messages, system),
            max_tokens=max_tokens,
            temperature=temperature,
            stream=True,
        )
        for chunk in chunks:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                yield delta
