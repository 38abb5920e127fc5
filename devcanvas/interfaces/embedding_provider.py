"""Embedding capability interface.

Concrete providers live outside this package; they only need to turn one
text into a vector of fixed dimensionality and raise ProviderError on
failure.
"""

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Abstract embedding capability."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model name."""

    @property
    def dims(self) -> int | None:
        """Output dimensionality, if known before the first call."""
        return None

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Embed one text.

        Raises:
            ProviderError: If the provider call fails
        """
