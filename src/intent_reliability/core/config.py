"""Configuration for intent-reliability.

Values come from environment variables and a local ``.env`` file (if present).
"""

import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from intent_reliability.logging import configure_logging


class LLMConfig(BaseSettings):
    """Configuration for model providers."""

    provider: Literal["openai"] = Field(
        default="openai",
        description="Model provider to use",
    )

    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )
    openai_model: str = Field(
        default="gpt-4.1-mini",
        description="Model used when a request does not name one",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="HTTP timeout for a single provider request",
    )

    model_config = SettingsConfigDict(
        env_prefix="INTENT_RELIABILITY_LLM_",
        env_file=".env",
        extra="ignore",
    )


class ReliabilityConfig(BaseSettings):
    """Top-level configuration."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging for intent_reliability loggers",
    )
    cancel_on_timeout: bool = Field(
        default=False,
        description="Cancel a step's work when its deadline elapses instead of abandoning it",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="Model provider configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="INTENT_RELIABILITY_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, fmt=self.log_format)

        if self.debug:
            logging.getLogger("intent_reliability").setLevel(logging.DEBUG)
