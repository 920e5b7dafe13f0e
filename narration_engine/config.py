"""Application configuration using pydantic-settings."""

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from narration_engine.exceptions import StateError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables (NARRATION_*)."""

    model_config = SettingsConfigDict(
        env_prefix="NARRATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Collaborator endpoints
    api_base_url: str = "http://localhost:8001/api/v1"
    narration_endpoint: str = "/coaching/narration/stream"
    chat_endpoint: str = "/coaching/chat/stream"

    # Transport
    request_timeout: float = 60.0  # Connect/read timeout for a single request
    stream_idle_timeout: float | None = None  # None = wait forever between chunks
    open_retries: int = 0  # Retries for failures while opening a stream

    # Playback pacing
    narration_interval_ms: int = 4000  # Long enough to read one sentence
    snapshot_interval_ms: int = 100  # Raw scrubbing without narration

    # Chat context bundle
    chat_snapshot_excerpt: int = 20
    chat_event_excerpt: int = 30
    team_context: str = "cloud9"

    # Misuse (double send, seek after destroy): raise when strict, log otherwise
    strict_state: bool = True

    # Debug
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def report_misuse(message: str, strict: bool) -> None:
    """Fail loudly in strict mode, otherwise log and let the caller no-op.

    Args:
        message: Description of the misuse.
        strict: Whether to raise.

    Raises:
        StateError: When strict is True.
    """
    if strict:
        raise StateError(message)
    logger.warning(f"Ignoring misuse: {message}")
