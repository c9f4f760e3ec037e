"""Provider-agnostic text generation used by review and commit-message steps."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Callable
from typing import Any

from agent_taskloop.config import AIConfigOverride, AIProvider, LLMConfig
from agent_taskloop.errors import ConfigurationError

from .base import LLMClient, strip_thinking

logger = logging.getLogger(__name__)

ClientFactory = Callable[[LLMConfig], LLMClient]


class AIOperations:
    """Holds the active AI configuration and runs one-shot prompts against it.

    ``config`` is mutable on purpose: the benchmark runner swaps it per model
    and restores it afterwards.
    """

    def __init__(self, config: LLMConfig | None = None, client_factory: ClientFactory | None = None):
        self.config = config or LLMConfig()
        self._client_factory = client_factory or create_llm_client

    def resolve_config(self, override: AIConfigOverride | None = None) -> LLMConfig:
        if override is None:
            return self.config
        update = {k: v for k, v in override.model_dump().items() if v is not None}
        if "provider" in update and update["provider"] != self.config.provider:
            # base_url/api_key belong to the default provider
            update.setdefault("base_url", None)
            update.setdefault("api_key", None)
        return self.config.model_copy(update=update)

    def stream_text(
        self,
        prompt: str,
        config_override: AIConfigOverride | None = None,
        system: str = "",
        on_chunk: Callable[[str], None] | None = None,
    ) -> str:
        """Send a single user prompt and return the full response text."""
        config = self.resolve_config(config_override)
        client = self._client_factory(config)
        logger.debug("Streaming from %s:%s", config.provider, config.model)

        parts: list[str] = []
        for chunk in client.stream(
            [{"role": "user", "content": prompt}],
            system=system,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        ):
            parts.append(chunk)
            if on_chunk:
                on_chunk(chunk)
        return strip_thinking("".join(parts))


def create_llm_client(llm_config: LLMConfig) -> LLMClient:
    """Create LLM client based on provider config."""
    provider = llm_config.provider

    if provider == AIProvider.ANTHROPIC.value:
        from agent_taskloop.llm.anthropic import AnthropicClient
        return AnthropicClient(model=llm_config.model, api_key=llm_config.api_key)

    from agent_taskloop.llm.openai_compat import (
        GEMINI_BASE_URL,
        LOCAL_BASE_URL,
        OPENAI_BASE_URL,
        OPENROUTER_BASE_URL,
        OpenAICompatClient,
    )

    defaults = {
        AIProvider.OPENAI.value: (OPENAI_BASE_URL, "OPENAI_API_KEY"),
        AIProvider.GEMINI.value: (GEMINI_BASE_URL, "GEMINI_API_KEY"),
        AIProvider.OPENROUTER.value: (OPENROUTER_BASE_URL, "OPENROUTER_API_KEY"),
        AIProvider.VLLM.value: (LOCAL_BASE_URL, None),
        AIProvider.LOCAL.value: (LOCAL_BASE_URL, None),
    }
    if provider not in defaults:
        raise ConfigurationError(f"Unknown LLM provider: {provider}")

    base_url, key_env = defaults[provider]
    api_key = llm_config.api_key or (os.environ.get(key_env) if key_env else None) or "dummy"
    return OpenAICompatClient(
        model=llm_config.model,
        base_url=llm_config.base_url or base_url,
        api_key=api_key,
    )


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in free-form text."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None
