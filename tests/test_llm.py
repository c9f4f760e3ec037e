"""Tests for AI operations and LLM client selection."""

import pytest

from agent_taskloop.config import AIConfigOverride, LLMConfig
from agent_taskloop.errors import ConfigurationError
from agent_taskloop.llm import AIOperations, LLMClient, LLMResponse, create_llm_client, extract_json_object
from agent_taskloop.llm.base import strip_thinking


class _ScriptedClient(LLMClient):
    def __init__(self, text: str):
        self.text = text
        self.requests = []

    def generate(self, messages, system="", max_tokens=8192, temperature=0.0):
        self.requests.append({"messages": messages, "system": system, "max_tokens": max_tokens})
        return LLMResponse(text=self.text)


def test_extract_json_object_skips_prose():
    text = 'Here is my verdict {not json} then {"approved": false, "feedback": "add tests"} done'
    assert extract_json_object(text) == {"approved": False, "feedback": "add tests"}


def test_extract_json_object_returns_none_without_object():
    assert extract_json_object("[1, 2, 3] no object here") is None
    assert extract_json_object("") is None


def test_strip_thinking():
    assert strip_thinking("<think>hmm\nmaybe</think>\n{\"a\": 1}") == '{"a": 1}'


def test_stream_text_uses_resolved_config():
    seen_configs = []
    client = _ScriptedClient("<think>x</think>fix: tidy")

    def factory(config):
        seen_configs.append(config)
        return client

    ai = AIOperations(LLMConfig(provider="anthropic", model="claude-sonnet-4-6", max_tokens=512), factory)
    chunks = []
    text = ai.stream_text(
        "write a message",
        config_override=AIConfigOverride(provider="openai", model="gpt-4o"),
        system="be brief",
        on_chunk=chunks.append,
    )

    assert text == "fix: tidy"
    assert chunks == ["<think>x</think>fix: tidy"]
    assert (seen_configs[0].provider, seen_configs[0].model) == ("openai", "gpt-4o")
    assert client.requests[0]["messages"] == [{"role": "user", "content": "write a message"}]
    assert client.requests[0]["system"] == "be brief"
    assert client.requests[0]["max_tokens"] == 512


def test_resolve_config_drops_provider_specific_endpoint():
    ai = AIOperations(LLMConfig(provider="local", model="qwen", base_url="http://localhost:8000/v1", api_key="k"))

    same_provider = ai.resolve_config(AIConfigOverride(model="qwen-large"))
    other_provider = ai.resolve_config(AIConfigOverride(provider="openai"))

    assert same_provider.base_url == "http://localhost:8000/v1"
    assert same_provider.model == "qwen-large"
    assert other_provider.base_url is None
    assert other_provider.api_key is None
    assert other_provider.model == "qwen"
    assert ai.resolve_config() is ai.config


def test_create_llm_client_rejects_unknown_provider():
    with pytest.raises(ConfigurationError):
        create_llm_client(LLMConfig(provider="nonexistent"))


def test_create_llm_client_uses_provider_default_url():
    client = create_llm_client(LLMConfig(provider="local", model="qwen"))
    assert client.base_url == "http://localhost:8000/v1"
    assert client.model == "qwen"
