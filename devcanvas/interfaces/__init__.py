"""Interfaces of the external capabilities DevCanvas depends on."""

from .embedding_provider import EmbeddingProvider
from .llm_provider import LLMProvider, LLMResponse

__all__ = ["EmbeddingProvider", "LLMProvider", "LLMResponse"]
