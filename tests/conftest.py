import math
import re
import zlib
from typing import Optional

import numpy as np
import pytest

from tabrag.core.models.document import SearchResult, StoredRow, TabularUpload
from tabrag.core.services.ingest_service import IngestService
from tabrag.core.services.search_service import SearchService

DIM = 64
_TOKEN = re.compile(r"\w+")


class BagOfWordsEmbedder:
    """Deterministic embedder: token counts hashed into a fixed vector."""

    def __init__(self):
        self.query_calls = 0
        self.warmed = False

    def encode(self, texts):
        if isinstance(texts, str):
            return np.array(self._vector(texts))
        return np.array([self._vector(t) for t in texts])

    def _vector(self, text: str) -> list[float]:
        vec = [0.0] * DIM
        for token in _TOKEN.findall(text.lower()):
            vec[zlib.crc32(token.encode()) % DIM] += 1.0
        return vec

    def embed_query(self, text: str) -> list[float]:
        self.query_calls += 1
        return self._vector(text)

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self._vector(t) for t in texts]

    def warmup(self) -> None:
        self.warmed = True


def _cosine_distance(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 1.0
    return 1.0 - sum(x * y for x, y in zip(a, b)) / norm


def _matches(metadata: dict, where: Optional[dict]) -> bool:
    return not where or all(metadata.get(k) == v for k, v in where.items())


class InMemoryVectorStore:
    """Vector store double with equality filters and cosine distance."""

    def __init__(self):
        self.created = False
        self.records: dict[str, dict] = {}

    def exists(self) -> bool:
        return self.created

    def add(self, ids, embeddings, documents, metadatas) -> None:
        self.created = True
        for i, row_id in enumerate(ids):
            self.records[row_id] = {
                "vector": embeddings[i],
                "text": documents[i],
                "metadata": dict(metadatas[i]),
            }

    def delete(self, where: dict) -> int:
        doomed = [k for k, r in self.records.items() if _matches(r["metadata"], where)]
        for key in doomed:
            del self.records[key]
        return len(doomed)

    def query(self, query_embedding, n_results=5, where=None) -> list[SearchResult]:
        scored = [
            SearchResult(
                id=row_id,
                text=r["text"],
                score=_cosine_distance(query_embedding, r["vector"]),
                metadata=dict(r["metadata"]),
            )
            for row_id, r in self.records.items()
            if _matches(r["metadata"], where)
        ]
        scored.sort(key=lambda s: s.score)
        return scored[:n_results]

    def scan(self, where=None, limit=500) -> list[StoredRow]:
        rows = [
            StoredRow(id=row_id, text=r["text"], metadata=dict(r["metadata"]))
            for row_id, r in self.records.items()
            if _matches(r["metadata"], where)
        ]
        return rows[:limit]

    def count(self) -> int:
        return len(self.records)


class ScriptedLLM:
    """Async LLM double; replies are consumed in order, exceptions are raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def complete(self, messages, model=None, temperature=None) -> str:
        self.calls.append(
            {"messages": messages, "model": model, "temperature": temperature}
        )
        reply = self.replies.pop(0) if self.replies else "baik"
        if isinstance(reply, Exception):
            raise reply
        return reply


PRODUCTS = [
    ("Laptop Asus Vivobook", "Elektronik", "4000000", "12"),
    ("Laptop Lenovo Ideapad", "Elektronik", "6500000", "8"),
    ("Laptop Acer Aspire", "Elektronik", "9000000", "5"),
    ("Laptop HP Pavilion", "Elektronik", "12000000", "7"),
    ("Laptop Dell Inspiron", "Elektronik", "15000000", "4"),
    ("Laptop Asus ROG", "Elektronik", "25000000", "3"),
    ("Laptop Apple Macbook Pro", "Elektronik", "35000000", "2"),
    ("Laptop MSI Katana", "Elektronik", "20000000", "6"),
    ("Beras Premium 5kg", "Sembako", "75000", "40"),
    ("Minyak Goreng 2L", "Sembako", "38000", "55"),
    ("Mie Instant Goreng", "Sembako", "3500", "200"),
    ("Gula Pasir 1kg", "Sembako", "17000", "80"),
]


def make_upload(file_id: int = 1, products=PRODUCTS, name: str = "produk.csv") -> TabularUpload:
    headers = ["nama_produk", "kategori", "harga", "stok"]
    rows = [dict(zip(headers, p)) for p in products]
    return TabularUpload(headers=headers, rows=rows, file_id=file_id, original_name=name)


@pytest.fixture
def embedder():
    return BagOfWordsEmbedder()


@pytest.fixture
def store():
    return InMemoryVectorStore()


@pytest.fixture
def ingest_service(embedder, store):
    return IngestService(embedder=embedder, vector_store=store, batch_size=5)


@pytest.fixture
def search_service(embedder, store):
    return SearchService(embedder=embedder, vector_store=store)


@pytest.fixture
def loaded_store(ingest_service, store):
    result = ingest_service.embed_upload(make_upload())
    assert result.success
    return store
