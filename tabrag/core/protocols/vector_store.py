"""Vector store protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable

from ..models.document import SearchResult, StoredRow


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """Protocol for vector storage.

    ``where`` filters are equality maps on metadata keys,
    e.g. ``{"file_id": 3}``.
    """

    def exists(self) -> bool:
        """Whether the table has ever been created."""
        ...

    def add(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict]
    ) -> None:
        """Add documents to the store.

        Args:
            ids: Document IDs.
            embeddings: Document embeddings.
            documents: Document texts.
            metadatas: Document metadata.
        """
        ...

    def delete(self, where: dict) -> int:
        """Delete records matching ``where``.

        Returns:
            Number of removed records.
        """
        ...

    def query(
        self,
        query_embedding: list[float],
        n_results: int = 5,
        where: Optional[dict] = None,
    ) -> list[SearchResult]:
        """Search by embedding.

        Args:
            query_embedding: Query vector.
            n_results: Number of results to return.
            where: Optional metadata filter.

        Returns:
            Results in ascending distance order, ``score`` = distance.
        """
        ...

    def scan(self, where: Optional[dict] = None, limit: int = 500) -> list[StoredRow]:
        """Read up to ``limit`` rows without vectors."""
        ...

    def count(self) -> int:
        """Get document count."""
        ...
