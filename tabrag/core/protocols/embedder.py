"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable
import numpy as np


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service."""

    def encode(self, texts: str | list[str]) -> np.ndarray:
        """Encode text(s) to embeddings.

        Args:
            texts: Single text or list of texts to encode.

        Returns:
            Numpy array of embeddings.
        """
        ...

    def embed_query(self, text: str) -> list[float]:
        """Embed a search query (one round trip)."""
        ...

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        """Embed row texts for storage, batched.

        Args:
            texts: Row texts.

        Returns:
            One vector per text, same order.
        """
        ...

    def warmup(self) -> None:
        """Pre-load the model for faster inference."""
        ...
