"""OpenAI provider implementation (Responses API)."""

import logging
from typing import Any

from openai import AsyncOpenAI

from intent_reliability.core.config import LLMConfig
from intent_reliability.llm.provider import ChatProvider, ChatRequest, ChatResponse

logger = logging.getLogger(__name__)

EMPTY_RESPONSE = "[empty response]"


def _extract_text(response: Any) -> str:
    text = getattr(response, "output_text", None)
    if text:
        return str(text)
    for item in getattr(response, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            part_text = getattr(part, "text", None)
            if part_text:
                return str(part_text)
    return EMPTY_RESPONSE


class OpenAIProvider(ChatProvider):
    """OpenAI API provider implementation."""

    def __init__(self, config: LLMConfig, client: AsyncOpenAI | None = None) -> None:
        """Initialize the OpenAI provider.

        Args:
            config: LLM configuration.
            client: Pre-built client, mainly for tests.

        Raises:
            ValueError: If no client is given and the API key is missing.
        """
        if client is None and not config.openai_api_key:
            raise ValueError("OpenAI API key is required")

        self.config = config
        self.model = config.openai_model
        self.client = client or AsyncOpenAI(
            api_key=config.openai_api_key,
            base_url=config.openai_base_url,
            timeout=config.request_timeout_seconds,
        )

        logger.info(f"OpenAI provider initialized with model: {self.model}")

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Create a response for ``request.prompt``.

        Args:
            request: Prompt and optional model override.

        Returns:
            The response text, or ``"[empty response]"`` if the API returned none.
        """
        model = request.model or self.model

        logger.debug(f"Generating response for prompt: {request.prompt[:100]}...")

        response = await self.client.responses.create(model=model, input=request.prompt)

        content = _extract_text(response)
        logger.debug(f"Generated {len(content)} characters")

        return ChatResponse(content=content)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
