"""Ingest service - embeds uploaded table rows into the vector store."""

import logging
import math
from pathlib import Path
from typing import Literal, Optional

from ..errors import ErrorCode
from ..models.document import DeleteResult, DocumentRecord, EmbedResult, TabularUpload
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol

logger = logging.getLogger(__name__)

ColumnType = Literal["number", "text"]


def _is_empty(value) -> bool:
    return value is None or value == ""


def _is_number(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str) and value.strip():
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def _to_number(value):
    """Coerce a numeric cell to int/float, leaving anything else as is."""
    if not _is_number(value):
        return value
    number = float(value.strip()) if isinstance(value, str) else float(value)
    return int(number) if number.is_integer() else number


class IngestService:
    """Service for embedding tabular uploads into the vector store."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        sample_size: int = 100,
        numeric_ratio: float = 0.8,
        batch_size: int = 50,
    ):
        """Initialize ingest service.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            sample_size: Non-empty values inspected per column.
            numeric_ratio: Share of numeric values that makes a column numeric.
            batch_size: Batch size for indexing.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._sample_size = sample_size
        self._numeric_ratio = numeric_ratio
        self._batch_size = batch_size

        self._loader: Optional["CsvLoader"] = None

    @property
    def loader(self):
        """Lazy load table loader."""
        if self._loader is None:
            from tabrag.infrastructure.table_loaders import CsvLoader

            self._loader = CsvLoader()
        return self._loader

    def detect_column_type(self, values: list) -> ColumnType:
        """Classify a column from its first non-empty values."""
        sample = [v for v in values if not _is_empty(v)][: self._sample_size]
        if not sample:
            return "text"

        numeric = sum(1 for v in sample if _is_number(v))
        return "number" if numeric / len(sample) >= self._numeric_ratio else "text"

    def classify_columns(
        self, headers: list[str], rows: list[dict]
    ) -> tuple[list[str], list[str]]:
        """Split headers into (text_columns, number_columns)."""
        text_columns: list[str] = []
        number_columns: list[str] = []

        for header in headers:
            if self.detect_column_type([row.get(header) for row in rows]) == "text":
                text_columns.append(header)
            else:
                number_columns.append(header)

        return text_columns, number_columns

    @staticmethod
    def create_embedding_text(row: dict, text_columns: list[str]) -> str:
        """Build ``"col: value. col: value"`` from the row's text columns."""
        return ". ".join(
            f"{col}: {row[col]}" for col in text_columns if not _is_empty(row.get(col))
        )

    @staticmethod
    def _build_metadata(
        upload: TabularUpload, row: dict, row_index: int, number_columns: set[str]
    ) -> dict:
        metadata = {}
        for col in upload.headers:
            value = row.get(col)
            if _is_empty(value):
                continue
            metadata[col] = _to_number(value) if col in number_columns else value

        metadata["file_id"] = upload.file_id
        metadata["file_name"] = upload.original_name
        metadata["row_index"] = row_index
        return metadata

    def embed_upload(self, upload: TabularUpload) -> EmbedResult:
        """Embed every row of an upload, replacing the file's previous vectors.

        Args:
            upload: Parsed table.

        Returns:
            Embed outcome with the column classification.
        """
        try:
            if not upload.rows:
                return EmbedResult(
                    success=False,
                    message="File tidak memiliki data",
                    error=ErrorCode.NO_DATA.value,
                )

            text_columns, number_columns = self.classify_columns(upload.headers, upload.rows)

            if not text_columns:
                return EmbedResult(
                    success=False,
                    message="Tidak ada kolom teks yang bisa di-embed",
                    text_columns=[],
                    number_columns=number_columns,
                    error=ErrorCode.NO_TEXT_COLUMNS.value,
                )

            logger.info(f"Embedding file: {upload.original_name} (file_id={upload.file_id})")
            logger.info(f"Text columns: {', '.join(text_columns)}")
            logger.info(f"Number columns: {', '.join(number_columns) or '-'}")

            texts = [self.create_embedding_text(row, text_columns) for row in upload.rows]
            vectors = self._embedder.embed_documents(texts)
            logger.info(f"Generated {len(vectors)} embeddings")

            numeric = set(number_columns)
            records = [
                DocumentRecord(
                    file_id=upload.file_id,
                    row_index=i,
                    text=texts[i],
                    vector=vectors[i],
                    metadata=self._build_metadata(upload, row, i, numeric),
                )
                for i, row in enumerate(upload.rows)
            ]

            # Replace, never merge: old rows of this file go first.
            removed = self._vector_store.delete({"file_id": upload.file_id})
            if removed:
                logger.info(f"Removed {removed} previous records of file_id={upload.file_id}")

            total_indexed = 0
            for i in range(0, len(records), self._batch_size):
                batch = records[i : i + self._batch_size]
                self._vector_store.add(
                    ids=[r.id for r in batch],
                    embeddings=[r.vector for r in batch],
                    documents=[r.text for r in batch],
                    metadatas=[r.metadata for r in batch],
                )
                total_indexed += len(batch)
                logger.info(f"Indexed batch: {total_indexed}/{len(records)}")

            return EmbedResult(
                success=True,
                message=f"Berhasil embed {total_indexed} baris data",
                embedded_count=total_indexed,
                text_columns=text_columns,
                number_columns=number_columns,
            )

        except Exception as e:
            logger.error(f"Embed error for file_id={upload.file_id}: {e}")
            return EmbedResult(
                success=False,
                message="Gagal melakukan embedding",
                error=str(e) or ErrorCode.UNKNOWN_ERROR.value,
            )

    def embed_path(self, path: str | Path, file_id: int) -> EmbedResult:
        """Load a table file from disk and embed it."""
        file_path = Path(path)
        if not file_path.exists() or not self.loader.supports(file_path):
            logger.error(f"Table file not found or unsupported: {file_path}")
            return EmbedResult(
                success=False,
                message="File tidak ditemukan",
                error=ErrorCode.FILE_NOT_FOUND.value,
            )

        return self.embed_upload(self.loader.load(file_path, file_id))

    def delete_file_embeddings(self, file_id: int) -> DeleteResult:
        """Remove every vector of one uploaded file."""
        try:
            deleted = self._vector_store.delete({"file_id": file_id})
            if deleted == 0:
                return DeleteResult(
                    success=True, message="Tidak ada data embedding", deleted_count=0
                )
            return DeleteResult(
                success=True,
                message=f"Berhasil menghapus {deleted} embeddings",
                deleted_count=deleted,
            )
        except Exception as e:
            logger.error(f"Delete embeddings error for file_id={file_id}: {e}")
            return DeleteResult(success=False, message=str(e) or ErrorCode.UNKNOWN_ERROR.value)
