from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Qdrant REST API
    qdrant_url: str = "http://localhost:6333"
    qdrant_collection: str = "openclaw-memories"
    qdrant_api_key: str = ""  # Optional, empty string means no auth header

    # OpenAI embeddings (optional, empty string disables the query explorer)
    openai_api_key: str = ""
    openai_base_url: str = ""  # Optional OpenAI-compatible proxy URL
    openai_embedding_model: str = "text-embedding-3-small"

    # Explicit agent directory (comma-separated). Empty = auto-detect from Qdrant.
    agents: str = ""

    # Dashboard display settings (reported by /api/settings)
    min_score: float = 0.2
    refresh_interval: int = 60
    page_size: int = 50
    dashboard_port: int = 8765

    # Applied to every Qdrant / telemetry HTTP call
    request_timeout_seconds: float = 15.0

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()
