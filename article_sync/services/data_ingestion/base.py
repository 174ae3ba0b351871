"""
Base classes and data models for data ingestion.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator

import httpx

from article_sync.config import Settings
from article_sync.models.domain import NormalizedArticle


class SourceType(str, Enum):
    """Type of content source."""
    RSS_FEED = "rss_feed"
    NEWS_API = "news_api"


@dataclass(frozen=True)
class SourceDescriptor:
    """A configured origin of articles."""
    id: str
    name: str
    url: str  # Feed URL for RSS sources, site domain for API sources
    trusted: bool = True


@dataclass
class IngestionResult:
    """Result of fetching from one source."""
    source_name: str
    articles_fetched: int = 0
    articles_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    def __str__(self) -> str:
        status = "✓" if self.success else "✗"
        return (
            f"{status} {self.source_name}: "
            f"fetched={self.articles_fetched}, skipped={self.articles_skipped}, "
            f"errors={len(self.errors)}, time={self.duration_seconds:.1f}s"
        )


class BaseSource(ABC):
    """
    Abstract base class for article fetchers.

    Each fetcher handles:
    - Retrieving raw documents from its API/feeds
    - Mapping them to NormalizedArticle
    - Containing its own failures: network and decode errors are
      logged and produce an empty result, never an exception
    """

    source_type: SourceType

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        self.settings = settings
        self._client = client
        self.results: list[IngestionResult] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the fetcher."""
        pass

    @abstractmethod
    async def fetch(self) -> list[NormalizedArticle]:
        """
        Fetch current articles from this source.

        Returns:
            List of NormalizedArticle objects, possibly empty
        """
        pass

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client, or a fresh one closed on exit."""
        if self._client is not None:
            yield self._client
            return

        async with httpx.AsyncClient(
            timeout=self.settings.http_timeout_seconds,
            follow_redirects=True,
            headers={"User-Agent": self.settings.user_agent},
        ) as client:
            yield client
