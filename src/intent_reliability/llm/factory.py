"""Factory for creating model providers."""

import logging

from intent_reliability.core.config import LLMConfig
from intent_reliability.llm.openai_provider import OpenAIProvider
from intent_reliability.llm.provider import ChatProvider

logger = logging.getLogger(__name__)


class LLMFactory:
    """Factory for creating chat provider instances."""

    @staticmethod
    def create(config: LLMConfig) -> ChatProvider:
        """Create a chat provider based on configuration.

        Args:
            config: LLM configuration specifying the provider.

        Returns:
            Configured provider instance.

        Raises:
            ValueError: If provider type is not supported.
        """
        logger.info(f"Creating LLM provider: {config.provider}")

        if config.provider == "openai":
            return OpenAIProvider(config)
        raise ValueError(f"Unsupported LLM provider: {config.provider}")
