"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the article sync job."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Article Sync"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = Field(default="INFO")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./article_sync.db",
        description="Async database URL (SQLAlchemy format)",
    )

    # API Keys (optional: missing keys degrade the matching stage)
    newsapi_key: str | None = Field(default=None)
    anthropic_api_key: str | None = Field(default=None)

    # Aggregator API
    newsapi_endpoint: str = Field(default="https://newsapi.org/v2/top-headlines")
    newsapi_page_size: int = Field(default=100, ge=1, le=100)

    # Summarization
    summary_model: str = Field(default="claude-3-haiku-20240307")
    summary_max_tokens: int = Field(default=300)
    max_prompt_chars: int = Field(
        default=8000,
        description="Article body is truncated to this many characters before prompting",
    )
    summary_requests_per_minute: int = Field(default=50)

    # Feeds
    feed_item_limit: int = Field(
        default=100,
        description="Maximum articles taken from a single feed document",
    )
    http_timeout_seconds: float = Field(default=15.0)
    user_agent: str = Field(default="ArticleSync/0.1 (+news aggregation job)")

    # Cleanup
    cleanup_batch_size: int = Field(default=50)

    @field_validator(
        "summary_max_tokens",
        "max_prompt_chars",
        "summary_requests_per_minute",
        "feed_item_limit",
        "cleanup_batch_size",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Limits must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
