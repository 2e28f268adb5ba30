"""Capability interface for chat-style model providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ChatRequest:
    """A prompt-like request. ``model`` overrides the provider default."""

    prompt: str
    model: str | None = None


@dataclass(frozen=True, slots=True)
class ChatResponse:
    content: str


class ChatProvider(ABC):
    """Abstract base class for chat providers.

    Steps look providers up by name through
    :meth:`intent_reliability.core.context.ExecutionContext.provider` and only rely
    on this one operation.
    """

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send ``request`` to the model and return its textual answer.

        Args:
            request: The prompt and optional model override.

        Returns:
            The model's reply.
        """
        pass

    async def close(self) -> None:
        """Release any connections held by the provider. The default holds none."""
