"""Chat domain models."""
from dataclasses import dataclass, field
from typing import Optional

from .document import SourceDocument
from .query import ExtractedQuery


@dataclass
class ChatMessage:
    """Chat message."""
    role: str  # "user" | "assistant" | "system"
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class RAGResponse:
    """Answer envelope returned for every chat request."""
    success: bool
    message: str
    sources: list[SourceDocument] = field(default_factory=list)
    is_rag_used: bool = False
    intent: Optional[ExtractedQuery] = None
    response_time: Optional[float] = None  # seconds
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "message": self.message,
            "sources": [
                {
                    "fileName": s.file_name,
                    "rowIndex": s.row_index,
                    "text": s.text,
                    "relevanceScore": s.relevance_score,
                    "metadata": s.metadata,
                }
                for s in self.sources
            ],
            "isRAGUsed": self.is_rag_used,
            "intent": self.intent.to_dict() if self.intent else None,
            "responseTime": self.response_time,
            "error": self.error,
        }
