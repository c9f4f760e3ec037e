"""LLM clients and AI operations."""

from .base import LLMClient, LLMResponse
from .operations import AIOperations, create_llm_client, extract_json_object
