
import logging
from typing import Optional

from openai import APIConnectionError, AsyncOpenAI

from tabrag.core.errors import LLMUnavailableError

logger = logging.getLogger(__name__)


class OllamaClient:
    """LLM client for Ollama (OpenAI-compatible API)."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434/v1",
        model: str = "qwen3:1.7b",
        max_tokens: int = 1024,
        temperature: float = 0.3,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API URL.
            model: Default model name.
            max_tokens: Max response tokens.
            temperature: Default sampling temperature.
        """
        self._client = AsyncOpenAI(base_url=base_url, api_key="ollama")
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def complete(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Run a non-streaming chat completion.

        Args:
            messages: Chat messages.
            model: Model override.
            temperature: Temperature override.

        Returns:
            Reply text ("" if the model returned nothing).

        Raises:
            LLMUnavailableError: Ollama is not reachable.
        """
        model = model or self._model
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=self._max_tokens,
                temperature=self._temperature if temperature is None else temperature,
            )
        except APIConnectionError as e:
            logger.error(f"[llm] Cannot reach Ollama at {self._client.base_url}: {e}")
            raise LLMUnavailableError(str(e)) from e

        content = response.choices[0].message.content or ""
        logger.debug(f"[llm] {model} replied with {len(content)} chars")
        return content
