"""Configuration management for the Sage Codex engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # Sandboxed environments may not expose .env; variables are set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Anthropic configuration (required)
    ANTHROPIC_API_KEY: str = Field(..., description="Anthropic API key")

    # Environment
    SAGE_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, test, staging, prod")

    # Chat turn configuration
    CHAT_MODEL: str = Field(
        default="claude-sonnet-4-20250514", description="Model used for chat turns"
    )
    CHAT_MAX_TOKENS: int = Field(default=4096, ge=1, description="Max output tokens per turn")
    MAX_TOOL_TURNS: int = Field(
        default=5, ge=1, description="Max request/dispatch rounds per user message"
    )

    # Stream creation retry (mid-stream failures are never retried)
    STREAM_MAX_RETRIES: int = Field(default=3, ge=1, description="Attempts to open a stream")
    STREAM_RETRY_INITIAL_DELAY: float = Field(
        default=1.0, ge=0, description="Initial backoff delay in seconds"
    )

    # Transport payload limits
    TOOL_RESULT_EVENT_MAX_CHARS: int = Field(
        default=2000, gt=0, description="Max chars of a tool result echoed to the client"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If required environment variables are missing
    """
    return Settings()
