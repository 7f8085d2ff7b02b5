"""Domain models."""
from .document import (
    DeleteResult,
    DocumentRecord,
    EmbedResult,
    HybridSearchResponse,
    SearchResult,
    SourceDocument,
    StoredRow,
    TabularUpload,
)
from .query import ExtractedQuery, ExtractionOutcome, Operator, QueryIntent
from .chat import ChatMessage, RAGResponse

__all__ = [
    "DeleteResult",
    "DocumentRecord",
    "EmbedResult",
    "HybridSearchResponse",
    "SearchResult",
    "SourceDocument",
    "StoredRow",
    "TabularUpload",
    "ExtractedQuery",
    "ExtractionOutcome",
    "Operator",
    "QueryIntent",
    "ChatMessage",
    "RAGResponse",
]
