"""Chat service - coordinates intent, search, post-processing and LLM."""

import logging
import time

from ..errors import LLMUnavailableError
from ..models.chat import ChatMessage, RAGResponse
from ..models.document import SourceDocument
from ..models.query import ExtractedQuery, QueryIntent
from ..protocols.llm import LLMProtocol
from ..strategies.post_processing import ResultPostProcessor
from .intent_service import IntentService
from .prompt_service import PromptService
from .search_service import SearchService

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Maaf, terjadi kesalahan saat memproses pertanyaan."
CONNECTION_ERROR_MESSAGE = (
    "Tidak dapat terhubung ke Ollama. Pastikan Ollama sedang berjalan."
)


class ChatService:
    """Answers one chat message per call; no state is kept between calls."""

    def __init__(
        self,
        llm: LLMProtocol,
        intent_service: IntentService,
        search_service: SearchService,
        post_processor: ResultPostProcessor,
        prompt_service: PromptService,
        default_limit: int = 5,
        superlative_limit: int = 10,
        budget_limit: int = 20,
    ):
        """Initialize chat service.

        Args:
            llm: LLM client for the answer.
            intent_service: Intent extractor.
            search_service: Hybrid retriever.
            post_processor: Intent-specific sort/filter.
            prompt_service: Context and system prompt builder.
            default_limit: Candidates fetched for plain searches.
            superlative_limit: Candidates fetched before sorting.
            budget_limit: Candidates fetched before filtering.
        """
        self._llm = llm
        self._intent = intent_service
        self._search = search_service
        self._post_processor = post_processor
        self._prompts = prompt_service
        self._default_limit = default_limit
        self._superlative_limit = superlative_limit
        self._budget_limit = budget_limit

    def _search_limit(self, intent: ExtractedQuery) -> int:
        # Sorting and filtering need a wider pool than the final answer.
        if intent.intent == QueryIntent.BUDGET:
            return self._budget_limit
        if intent.intent == QueryIntent.SUPERLATIVE:
            return self._superlative_limit
        return self._default_limit

    async def _generate(self, system_prompt: str, user_message: str) -> str:
        messages = [
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=user_message),
        ]
        return await self._llm.complete([m.to_dict() for m in messages])

    async def chat(self, user_message: str, use_rag: bool = True) -> RAGResponse:
        """Answer a message, grounding it in retrieved rows when useful.

        Flow:
            1. General chat (or RAG disabled) → answer with the minimal prompt
            2. Extract intent → hybrid search on the entity
            3. Sort/filter by intent → build context and system prompt
            4. Generate the answer

        Args:
            user_message: User's message.
            use_rag: Set False to skip retrieval entirely.

        Returns:
            Response envelope; ``success`` is False on failure.
        """
        start = time.perf_counter()

        try:
            if not use_rag or self._intent.is_general_chat(user_message):
                logger.info(f"General chat shortcut for '{user_message[:50]}'")
                message = await self._generate(self._prompts.general_prompt(), user_message)
                return RAGResponse(
                    success=True,
                    message=message,
                    is_rag_used=False,
                    response_time=time.perf_counter() - start,
                )

            intent = await self._intent.extract(user_message)
            logger.info(f"Intent detected: {intent.intent.value}")
            if intent.value is not None:
                logger.info(f"Budget value: {intent.value}")

            search_query = intent.entity or user_message
            limit = self._search_limit(intent)
            logger.info(
                f"Search query: '{search_query}' "
                f"(entity: '{intent.entity or 'none'}', limit={limit})"
            )

            search_response = self._search.search(search_query, limit)

            sources: list[SourceDocument] = []
            is_rag_used = bool(search_response.success and search_response.results)

            if is_rag_used:
                candidates = [SourceDocument.from_result(r) for r in search_response.results]
                sources = self._post_processor.apply(intent, candidates)
                _, system_prompt = self._prompts.assemble(intent, sources)
            else:
                logger.info(
                    f"No retrieval results ({search_response.error or 'empty'}), "
                    "answering without data"
                )
                system_prompt = self._prompts.general_prompt()

            message = await self._generate(system_prompt, user_message)

            return RAGResponse(
                success=True,
                message=message,
                sources=sources,
                is_rag_used=is_rag_used,
                intent=intent,
                response_time=time.perf_counter() - start,
            )

        except LLMUnavailableError as e:
            logger.error(f"LLM unavailable: {e}")
            return RAGResponse(
                success=False, message=CONNECTION_ERROR_MESSAGE, error=str(e)
            )
        except Exception as e:
            logger.error(f"Chat error: {e}")
            return RAGResponse(
                success=False, message=GENERIC_ERROR_MESSAGE, error=str(e)
            )
