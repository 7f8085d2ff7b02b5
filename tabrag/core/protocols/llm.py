"""LLM protocol for dependency injection."""
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for LLM client."""

    async def complete(
        self,
        messages: list[dict],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Run a chat completion and return the reply text.

        Args:
            messages: Chat messages (role/content dicts).
            model: Model override.
            temperature: Sampling temperature override.

        Returns:
            Assistant reply.

        Raises:
            LLMUnavailableError: If the model server is unreachable.
        """
        ...
