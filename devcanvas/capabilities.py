"""Explicit capability container passed into both orchestrators.

A Capabilities instance is constructed once by the caller and shared by
reference; there is no module-level provider registry.
"""

import importlib
from dataclasses import dataclass
from typing import Any

from loguru import logger

from devcanvas.core.exceptions import ConfigurationError
from devcanvas.interfaces.embedding_provider import EmbeddingProvider
from devcanvas.interfaces.llm_provider import LLMProvider


@dataclass
class Capabilities:
    """External embedding and generation capabilities."""

    embedding: EmbeddingProvider | None = None
    generation: LLMProvider | None = None

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None

    @property
    def has_generation(self) -> bool:
        return self.generation is not None

    def require_embedding(self) -> EmbeddingProvider:
        """Return the embedding capability or fail fast.

        Raises:
            ConfigurationError: If no embedding capability is configured
        """
        if self.embedding is None:
            raise ConfigurationError(
                "No embedding provider configured. Set DEVCANVAS_EMBEDDING__PROVIDER "
                "or pass --embedding-provider module:attribute before indexing."
            )
        return self.embedding


def _load_factory(import_path: str) -> Any:
    module_name, sep, attr = import_path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(
            f"Invalid provider path '{import_path}'. Expected 'package.module:attribute'"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import provider module '{module_name}': {e}") from e
    try:
        target = getattr(module, attr)
    except AttributeError:
        raise ConfigurationError(
            f"Provider module '{module_name}' has no attribute '{attr}'"
        ) from None
    return target() if callable(target) else target


def load_capabilities(
    embedding_path: str | None, llm_path: str | None
) -> Capabilities:
    """Instantiate capabilities from 'module:attribute' import paths."""
    embedding = None
    generation = None
    if embedding_path:
        embedding = _load_factory(embedding_path)
        if not isinstance(embedding, EmbeddingProvider):
            raise ConfigurationError(
                f"'{embedding_path}' did not produce an EmbeddingProvider"
            )
        logger.debug(f"Loaded embedding provider {embedding.name}/{embedding.model}")
    if llm_path:
        generation = _load_factory(llm_path)
        if not isinstance(generation, LLMProvider):
            raise ConfigurationError(f"'{llm_path}' did not produce an LLMProvider")
        logger.debug(f"Loaded generation provider {generation.name}/{generation.model}")
    return Capabilities(embedding=embedding, generation=generation)
