import logging
from typing import Optional

import requests

from tabrag.core.models.document import SearchResult, StoredRow

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


def _clean_metadata(metadata: dict) -> dict:
    """Chroma accepts scalar metadata only; drop nulls, stringify the rest."""
    cleaned = {}
    for key, value in metadata.items():
        if value is None:
            continue
        cleaned[key] = value if isinstance(value, _SCALAR_TYPES) else str(value)
    return cleaned


class ChromaVectorStore:
    """Vector store using ChromaDB HTTP API."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        collection_name: str = "tabular_rows",
        tenant: str = "default_tenant",
        database: str = "default_database",
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            collection_name: Collection name.
            tenant: Tenant name.
            database: Database name.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._collection_name = collection_name
        self._collection_id: Optional[str] = None

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    def _find_collection(self) -> Optional[str]:
        """Look up the collection ID without creating it."""
        if self._collection_id:
            return self._collection_id

        resp = requests.get(self._collections_url)
        if resp.status_code == 200:
            for col in resp.json():
                if col["name"] == self._collection_name:
                    self._collection_id = col["id"]
                    return self._collection_id
        return None

    def _ensure_collection(self) -> str:
        """Get or create collection, return ID."""
        col_id = self._find_collection()
        if col_id:
            return col_id

        resp = requests.post(
            self._collections_url,
            json={"name": self._collection_name, "metadata": {"hnsw:space": "cosine"}},
        )
        resp.raise_for_status()
        self._collection_id = resp.json()["id"]
        logger.info(f"Created collection: {self._collection_name}")
        return self._collection_id

    def exists(self) -> bool:
        return self._find_collection() is not None

    def add(
        self,
        ids: list[str],
        embeddings: list[list[float]],
        documents: list[str],
        metadatas: list[dict],
    ) -> None:
        """Add documents to collection."""
        col_id = self._ensure_collection()
        resp = requests.post(
            f"{self._collections_url}/{col_id}/add",
            json={
                "ids": ids,
                "embeddings": embeddings,
                "documents": documents,
                "metadatas": [_clean_metadata(m) for m in metadatas],
            },
        )
        resp.raise_for_status()

    def delete(self, where: dict) -> int:
        """Delete matching records, return how many were removed."""
        col_id = self._find_collection()
        if col_id is None:
            logger.info("Delete skipped: collection does not exist")
            return 0

        before = self.count()
        resp = requests.post(f"{self._collections_url}/{col_id}/delete", json={"where": where})
        resp.raise_for_status()
        after = self.count()

        logger.info(f"Deleted {before - after} records where {where}")
        return before - after

    def query(
        self,
        query_embedding: list[float],
        n_results: int = 5,
        where: Optional[dict] = None,
    ) -> list[SearchResult]:
        """Search by embedding."""
        col_id = self._ensure_collection()
        payload = {
            "query_embeddings": [query_embedding],
            "n_results": n_results,
            "include": ["documents", "metadatas", "distances"],
        }
        if where:
            payload["where"] = where

        resp = requests.post(f"{self._collections_url}/{col_id}/query", json=payload)

        if resp.status_code != 200:
            logger.error(f"Chroma query failed ({resp.status_code}): {resp.text[:200]}")
            return []

        data = resp.json()
        results = []

        if data.get("ids") and data["ids"][0]:
            for i in range(len(data["ids"][0])):
                results.append(
                    SearchResult(
                        id=data["ids"][0][i],
                        text=data["documents"][0][i] or "",
                        score=data["distances"][0][i],
                        metadata=data["metadatas"][0][i] or {},
                        source="vector",
                    )
                )

        return results

    def scan(self, where: Optional[dict] = None, limit: int = 500) -> list[StoredRow]:
        """Read rows without vectors."""
        col_id = self._ensure_collection()
        payload = {"limit": limit, "include": ["documents", "metadatas"]}
        if where:
            payload["where"] = where

        resp = requests.post(f"{self._collections_url}/{col_id}/get", json=payload)
        if resp.status_code != 200:
            logger.error(f"Chroma get failed ({resp.status_code}): {resp.text[:200]}")
            return []

        data = resp.json()
        documents = data.get("documents") or []
        metadatas = data.get("metadatas") or []
        return [
            StoredRow(
                id=row_id,
                text=(documents[i] if i < len(documents) else None) or "",
                metadata=(metadatas[i] if i < len(metadatas) else None) or {},
            )
            for i, row_id in enumerate(data.get("ids") or [])
        ]

    def count(self) -> int:
        """Get document count."""
        col_id = self._find_collection()
        if col_id is None:
            return 0
        resp = requests.get(f"{self._collections_url}/{col_id}/count")
        return resp.json() if resp.status_code == 200 else 0
