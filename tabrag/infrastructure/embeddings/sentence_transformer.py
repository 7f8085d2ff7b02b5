import logging
from functools import cached_property

import numpy as np
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        query_prefix: str = "query: ",
        passage_prefix: str = "passage: ",
        batch_size: int = 50,
    ):
        self._model_name = model_name
        self._query_prefix = query_prefix
        self._passage_prefix = passage_prefix
        self._batch_size = batch_size

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def warmup(self) -> None:
        _ = self.model
        logger.info("Embedding model warmed up")

    def encode(self, texts: str | list[str]) -> np.ndarray:
        return self.model.encode(texts, convert_to_numpy=True)

    def embed_query(self, text: str) -> list[float]:
        return self.encode(f"{self._query_prefix}{text}").tolist()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for i in range(0, len(texts), self._batch_size):
            batch = [f"{self._passage_prefix}{t}" for t in texts[i : i + self._batch_size]]
            vectors.extend(self.encode(batch).tolist())
            logger.debug(f"Embedded batch: {len(vectors)}/{len(texts)}")
        return vectors
