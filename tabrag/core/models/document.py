"""Document domain models."""
from dataclasses import dataclass, field
from typing import Literal, Optional, Union

# Closed set of values a row cell may carry once stored as metadata.
MetadataValue = Union[str, int, float, bool, None]
Metadata = dict[str, MetadataValue]

SearchSource = Literal["vector", "fuzzy", "hybrid"]

# Keys every stored row carries for bookkeeping; never shown to the model.
BOOKKEEPING_KEYS = ("file_id", "file_name", "row_index")


def metadata_number(metadata: Metadata, key: str, default: float = 0.0) -> float:
    """Read a metadata value as a number.

    Missing keys, booleans and values that do not parse as numbers
    fall back to ``default``.
    """
    value = metadata.get(key)
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return default


def metadata_text(metadata: Metadata, key: str, default: str = "") -> str:
    """Read a metadata value as a string, ``default`` when absent."""
    value = metadata.get(key)
    if value is None:
        return default
    return str(value)


def to_relevance(score: float) -> float:
    """Convert a distance-like score (lower is better) to relevance."""
    return 1.0 - score


@dataclass
class TabularUpload:
    """Parsed upload handed over by the upload subsystem."""
    headers: list[str]
    rows: list[dict]
    file_id: int
    original_name: str


@dataclass
class DocumentRecord:
    """One embedded row of an uploaded file."""
    file_id: int
    row_index: int
    text: str
    vector: list[float]
    metadata: Metadata = field(default_factory=dict)

    @property
    def id(self) -> str:
        return f"{self.file_id}_{self.row_index}"


@dataclass
class StoredRow:
    """Row returned by a store scan (no vector)."""
    id: str
    text: str
    metadata: Metadata


@dataclass
class SearchResult:
    """Retrieved row; ``score`` is distance-like, lower = more relevant."""
    id: str
    text: str
    score: float
    metadata: Metadata
    source: SearchSource = "vector"


@dataclass
class HybridSearchResponse:
    """Retriever output envelope."""
    success: bool
    results: list[SearchResult] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SourceDocument:
    """User-facing projection of a search result."""
    file_name: str
    row_index: int
    text: str
    relevance_score: float
    metadata: Metadata

    @classmethod
    def from_result(cls, result: SearchResult) -> "SourceDocument":
        return cls(
            file_name=metadata_text(result.metadata, "file_name", "Unknown"),
            row_index=int(metadata_number(result.metadata, "row_index")),
            text=result.text,
            relevance_score=to_relevance(result.score),
            metadata=result.metadata,
        )


@dataclass
class EmbedResult:
    """Outcome of a bulk embed."""
    success: bool
    message: str
    embedded_count: Optional[int] = None
    text_columns: Optional[list[str]] = None
    number_columns: Optional[list[str]] = None
    error: Optional[str] = None


@dataclass
class DeleteResult:
    """Outcome of removing a file's vectors."""
    success: bool
    message: str
    deleted_count: Optional[int] = None
