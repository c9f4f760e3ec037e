"""Anthropic Claude LLM client."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import anthropic

from .base import LLMClient, LLMResponse


class AnthropicClient(LLMClient):
    """Claude API client. The system prompt is marked cacheable."""

    def __init__(self, model: str = "claude-sonnet-4-6", api_key: str | None = None):
        self.model = model
        self.client = anthropic.Anthropic(api_key=api_key) if api_key else anthropic.Anthropic()

    def _request_kwargs(
        self,
        messages: list[dict[str, Any]],
        system: str,
        max_tokens: int,
        temperature: float,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": messages,
        }
        if system:
            kwargs["system"] = [
                {
                    "type": "text",
                    "text": system,
                    "cache_control": {"type": "ephemeral"},
                }
            ]
        return kwargs

    def generate(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 8192,
        temperature: float = 0.0,
    ) -> LLMResponse:
        response = self.client.messages.create(
            **self._request_kwargs(messages, system, max_tokens, temperature)
        )
        text = "\n".join(block.text for block in response.content if block.type == "text")
        return LLMResponse(
            text=text,
            stop_reason=response.stop_reason,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            raw_response=response,
        )

    def stream(
        self,
        messages: list[dict[str, Any]],
        system: str = "",
        max_tokens: int = 8192,
        temperature: float = 0.0,
    ) -> Iterator[str]:
        with self.client.messages.stream(
            **self._request_kwargs(messages, system, max_tokens, temperature)
        ) as stream:
            yield from stream.text_stream
