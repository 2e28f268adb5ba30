"""LLM package initialization."""

from intent_reliability.llm.factory import LLMFactory
from intent_reliability.llm.provider import ChatProvider, ChatRequest, ChatResponse

__all__ = [
    "ChatProvider",
    "ChatRequest",
    "ChatResponse",
    "LLMFactory",
]
