"""
NewsAPI fetcher for top headlines from an allow-list of outlets.
API docs: https://newsapi.org/docs/endpoints/top-headlines
"""
import logging
import time
from datetime import datetime
from typing import Optional, Sequence

import httpx

from article_sync.config import Settings
from article_sync.models.domain import NormalizedArticle, utcnow
from article_sync.services.data_ingestion.base import (
    BaseSource,
    IngestionResult,
    SourceDescriptor,
    SourceType,
)
from article_sync.services.data_ingestion.feed_parser import parse_timestamp

logger = logging.getLogger(__name__)

# Outlets we accept from the aggregator; `url` is the outlet's domain
NEWS_SOURCES: tuple[SourceDescriptor, ...] = (
    SourceDescriptor(id="techcrunch", name="TechCrunch", url="techcrunch.com"),
    SourceDescriptor(id="the-verge", name="The Verge", url="theverge.com"),
    SourceDescriptor(id="wired", name="Wired", url="wired.com"),
    SourceDescriptor(id="engadget", name="Engadget", url="engadget.com"),
    SourceDescriptor(id="ars-technica", name="Ars Technica", url="arstechnica.com"),
    SourceDescriptor(id="bloomberg", name="Bloomberg", url="bloomberg.com"),
    SourceDescriptor(id="forbes", name="Forbes", url="forbes.com"),
    SourceDescriptor(id="cnbc", name="CNBC", url="cnbc.com"),
    SourceDescriptor(id="financial-times", name="Financial Times", url="ft.com"),
    SourceDescriptor(id="business-insider", name="Business Insider", url="businessinsider.com"),
)

REMOVED_PLACEHOLDER = "[Removed]"


class NewsAPIError(Exception):
    """The aggregator answered, but not with a usable article list."""


class NewsAPISource(BaseSource):
    """Fetches one batch of headlines from NewsAPI per run."""

    source_type = SourceType.NEWS_API

    def __init__(
        self,
        settings: Settings,
        sources: Sequence[SourceDescriptor] = NEWS_SOURCES,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(settings, client)
        self.sources = tuple(sources)

    @property
    def name(self) -> str:
        return "NewsAPI"

    def _has_api_key(self) -> bool:
        return bool(self.settings.newsapi_key)

    def build_params(self) -> dict:
        return {
            "apiKey": self.settings.newsapi_key,
            "language": "en",
            "pageSize": self.settings.newsapi_page_size,
            "sources": ",".join(s.id for s in self.sources),
        }

    def match_source(self, reported_name: Optional[str]) -> Optional[SourceDescriptor]:
        """First allow-listed outlet whose name appears in the reported source name."""
        if not reported_name:
            return None
        reported = reported_name.lower()
        for source in self.sources:
            if source.name.lower() in reported:
                return source
        return None

    async def fetch(self) -> list[NormalizedArticle]:
        """Fetch headlines, returning an empty list on any failure."""
        start_time = time.monotonic()
        result = IngestionResult(source_name=self.name)
        self.results = [result]

        if not self._has_api_key():
            logger.warning("NewsAPI key not configured, skipping")
            result.errors.append("NewsAPI key not configured")
            return []

        try:
            data = await self._fetch()
            articles = self._parse_articles(data["articles"], result)
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error fetching from NewsAPI: {e}")
            result.errors.append(str(e))
            articles = []
        except Exception as e:
            logger.error(f"Error fetching from NewsAPI: {e}")
            result.errors.append(str(e))
            articles = []

        result.articles_fetched = len(articles)
        result.duration_seconds = time.monotonic() - start_time
        logger.info(f"Fetched {len(articles)} articles from NewsAPI")
        return articles

    async def _fetch(self) -> dict:
        async with self._http_client() as client:
            response = await client.get(self.settings.newsapi_endpoint, params=self.build_params())
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise NewsAPIError("Unexpected response body")
        if data.get("status") == "error":
            raise NewsAPIError(f"NewsAPI error: {data.get('message')}")
        if not isinstance(data.get("articles"), list):
            raise NewsAPIError("No articles found")

        return data

    def _parse_articles(
        self,
        raw_articles: list[dict],
        result: IngestionResult,
    ) -> list[NormalizedArticle]:
        """Keep allow-listed outlets and map them to our source ids."""
        fetched_at = utcnow()
        matched = []
        for raw in raw_articles:
            if isinstance(raw, dict) and self.match_source(_reported_name(raw)):
                matched.append(raw)
            else:
                result.articles_skipped += 1

        articles = []
        for index, raw in enumerate(matched):
            try:
                article = self._parse_article(raw, index, fetched_at)
            except Exception as e:
                logger.warning(f"Skipping malformed NewsAPI article {index}: {e}")
                article = None

            if article:
                articles.append(article)
            else:
                result.articles_skipped += 1

        return articles

    def _parse_article(
        self,
        raw: dict,
        index: int,
        fetched_at: datetime,
    ) -> Optional[NormalizedArticle]:
        """Parse a NewsAPI article into our NormalizedArticle model."""
        title = (raw.get("title") or "").strip()
        if not title or title == REMOVED_PLACEHOLDER:
            return None

        url = (raw.get("url") or "").strip() or None

        description = raw.get("description") or ""
        if description == REMOVED_PLACEHOLDER:
            description = ""

        reported_name = _reported_name(raw) or "Unknown"
        source = self.match_source(reported_name)

        return NormalizedArticle(
            identity=url or f"{title}-{index}",
            title=title,
            description=description,
            url=url,
            image_url=raw.get("urlToImage") or None,
            published_at=parse_timestamp(raw.get("publishedAt"), fetched_at),
            source_id=source.id if source else "unknown",
            source_name=reported_name,
        )


def _reported_name(raw: dict) -> Optional[str]:
    source = raw.get("source")
    if not isinstance(source, dict):
        return None
    name = source.get("name")
    return name if isinstance(name, str) else None
