"""Search service - hybrid vector + fuzzy retrieval."""

import logging
from typing import Optional

from ..errors import ErrorCode
from ..models.document import HybridSearchResponse, metadata_text
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..strategies.fusion import fuse_results
from ..strategies.fuzzy_matching import FuzzyMatcher

logger = logging.getLogger(__name__)


class SearchService:
    """Hybrid search: semantic neighbours fused with typo-tolerant matches."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        fuzzy_matcher: FuzzyMatcher | None = None,
        scan_limit: int = 500,
        name_field: str = "nama_produk",
    ):
        """Initialize search service.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            fuzzy_matcher: Lexical matcher (default settings if None).
            scan_limit: Max rows scanned for the fuzzy branch.
            name_field: Metadata key used to label results in logs.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._fuzzy = fuzzy_matcher or FuzzyMatcher(name_field=name_field)
        self._scan_limit = scan_limit
        self._name_field = name_field

    @staticmethod
    def _file_filter(file_id: Optional[int]) -> Optional[dict]:
        return {"file_id": file_id} if file_id is not None else None

    def search(
        self, query: str, limit: int = 5, file_id: Optional[int] = None
    ) -> HybridSearchResponse:
        """Search rows with both branches and fuse the rankings.

        Args:
            query: Search query.
            limit: Number of results to return.
            file_id: Restrict to one uploaded file.

        Returns:
            Fused results, ``score`` distance-like (lower is better).
        """
        logger.info(f"Hybrid search: '{query[:50]}' (limit={limit}, file_id={file_id})")

        try:
            if not self._vector_store.exists():
                return HybridSearchResponse(
                    success=False, error=ErrorCode.NO_EMBEDDED_DATA.value
                )

            where = self._file_filter(file_id)
            fetch_k = limit * 2

            query_embedding = self._embedder.embed_query(query)
            vector_results = self._vector_store.query(
                query_embedding=query_embedding, n_results=fetch_k, where=where
            )
            logger.info(f"Hybrid search: vector branch {len(vector_results)} results")

            rows = self._vector_store.scan(where=where, limit=self._scan_limit)
            fuzzy_matches = self._fuzzy.search(query, rows, limit=fetch_k)
            logger.info(
                f"Hybrid search: fuzzy branch {len(fuzzy_matches)} matches "
                f"from {len(rows)} scanned rows"
            )

            results = fuse_results(vector_results, fuzzy_matches, limit)

            logger.info(f"Hybrid search: returned {len(results)}/{limit} results")
            if logger.isEnabledFor(logging.DEBUG):
                for i, r in enumerate(results, 1):
                    label = metadata_text(r.metadata, self._name_field) or r.text[:30]
                    logger.debug(f"  {i}. [{r.source}] {label} score={r.score:.3f}")

            return HybridSearchResponse(success=True, results=results)

        except Exception as e:
            logger.error(f"Hybrid search error: {e}")
            return HybridSearchResponse(success=False, error=str(e))

    def search_similar(
        self, query: str, limit: int = 5, file_id: Optional[int] = None
    ) -> HybridSearchResponse:
        """Vector-only search, ``score`` is the raw store distance."""
        try:
            if not self._vector_store.exists():
                return HybridSearchResponse(
                    success=False, error=ErrorCode.NO_EMBEDDED_DATA.value
                )

            results = self._vector_store.query(
                query_embedding=self._embedder.embed_query(query),
                n_results=limit,
                where=self._file_filter(file_id),
            )
            return HybridSearchResponse(success=True, results=results)

        except Exception as e:
            logger.error(f"Search error: {e}")
            return HybridSearchResponse(success=False, error=str(e))

    def has_embedded_data(self) -> bool:
        """Whether any row has been embedded yet."""
        try:
            return self._vector_store.exists() and self._vector_store.count() > 0
        except Exception as e:
            logger.error(f"Store check failed: {e}")
            return False
