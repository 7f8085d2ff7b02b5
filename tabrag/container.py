import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.vector_store import VectorStoreProtocol
    from .core.services.chat_service import ChatService
    from .core.services.ingest_service import IngestService
    from .core.services.intent_service import IntentService
    from .core.services.prompt_service import PromptService
    from .core.services.search_service import SearchService
    from .core.strategies.fuzzy_matching import FuzzyMatcher
    from .core.strategies.post_processing import ResultPostProcessor
    from .infrastructure.embeddings.sentence_transformer import (
        SentenceTransformerEmbedder,
    )
    from .infrastructure.llm.ollama_client import OllamaClient
    from .infrastructure.vector_stores.chroma_store import ChromaVectorStore

    container.register(
        EmbedderProtocol,
        lambda: SentenceTransformerEmbedder(
            settings.embedding_model,
            query_prefix=settings.embedding_query_prefix,
            passage_prefix=settings.embedding_passage_prefix,
            batch_size=settings.embed_batch_size,
        ),
        singleton=True,
    )

    container.register(
        VectorStoreProtocol,
        lambda: ChromaVectorStore(
            host=settings.chroma_host,
            port=settings.chroma_port,
            collection_name=settings.chroma_collection,
        ),
        singleton=True,
    )

    container.register(
        LLMProtocol,
        lambda: OllamaClient(
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        ),
        singleton=True,
    )

    container.register(
        FuzzyMatcher,
        lambda: FuzzyMatcher(
            name_field=settings.fuzzy_name_field,
            threshold=settings.fuzzy_threshold,
            min_match_length=settings.fuzzy_min_match_length,
        ),
        singleton=True,
    )

    container.register(
        SearchService,
        lambda: SearchService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            fuzzy_matcher=container.resolve(FuzzyMatcher),
            scan_limit=settings.fuzzy_scan_limit,
            name_field=settings.fuzzy_name_field,
        ),
        singleton=True,
    )

    container.register(
        IntentService,
        lambda: IntentService(
            llm=container.resolve(LLMProtocol),
            model=settings.llm_intent_model,
            temperature=settings.llm_intent_temperature,
            confidence_threshold=settings.intent_confidence_threshold,
        ),
        singleton=True,
    )

    container.register(ResultPostProcessor, ResultPostProcessor, singleton=True)
    container.register(PromptService, PromptService, singleton=True)

    container.register(
        ChatService,
        lambda: ChatService(
            llm=container.resolve(LLMProtocol),
            intent_service=container.resolve(IntentService),
            search_service=container.resolve(SearchService),
            post_processor=container.resolve(ResultPostProcessor),
            prompt_service=container.resolve(PromptService),
            default_limit=settings.rag_default_limit,
            superlative_limit=settings.rag_superlative_limit,
            budget_limit=settings.rag_budget_limit,
        ),
        singleton=True,
    )

    container.register(
        IngestService,
        lambda: IngestService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            sample_size=settings.column_sample_size,
            numeric_ratio=settings.numeric_column_ratio,
            batch_size=settings.embed_batch_size,
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return container
