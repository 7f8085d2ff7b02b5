"""Core business services."""
from .intent_service import IntentService
from .search_service import SearchService
from .prompt_service import PromptService
from .chat_service import ChatService
from .ingest_service import IngestService

__all__ = [
    "IntentService",
    "SearchService",
    "PromptService",
    "ChatService",
    "IngestService",
]
