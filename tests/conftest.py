"""Test configuration and fixtures."""

from collections.abc import Callable
from typing import Any

import pytest

from intent_reliability.core.config import LLMConfig, ReliabilityConfig
from intent_reliability.core.context import ExecutionContext
from intent_reliability.core.telemetry import TraceRecorder
from intent_reliability.llm.provider import ChatProvider, ChatRequest, ChatResponse


class EchoProvider(ChatProvider):
    """Chat provider that records prompts and answers from a script."""

    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)
        self.requests: list[ChatRequest] = []
        self.closed = False

    async def chat(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        if self.replies:
            return ChatResponse(content=self.replies.pop(0))
        return ChatResponse(content=f"echo: {request.prompt}")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def recorder() -> TraceRecorder:
    """Provide a sink that records every event."""
    return TraceRecorder()


@pytest.fixture
def make_ctx(recorder: TraceRecorder) -> Callable[..., ExecutionContext[Any]]:
    """Build a fresh execution context wired to the recorder."""

    def _make(input: Any = None, **kwargs: Any) -> ExecutionContext[Any]:
        kwargs.setdefault("telemetry", recorder)
        return ExecutionContext(input=input, **kwargs)

    return _make


@pytest.fixture
def echo_provider() -> EchoProvider:
    return EchoProvider()


@pytest.fixture
def llm_config() -> LLMConfig:
    """Provide a test LLM configuration."""
    return LLMConfig(
        provider="openai",
        openai_api_key="test-key",
        openai_model="gpt-4.1-mini",
    )


@pytest.fixture
def reliability_config(llm_config: LLMConfig) -> ReliabilityConfig:
    """Provide a test top-level configuration."""
    return ReliabilityConfig(
        log_level="DEBUG",
        debug=True,
        llm=llm_config,
    )
