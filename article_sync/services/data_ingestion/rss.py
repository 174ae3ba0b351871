"""
RSS feed fetching for the configured news sites.

Each feed is fetched and parsed independently; a feed that is down or
malformed contributes nothing without affecting the others.
"""

import asyncio
import logging
import re
import time
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
from article_sync.services.data_ingestion.feed_parser import parse_feed

logger = logging.getLogger(__name__)

RSS_SOURCES: tuple[SourceDescriptor, ...] = (
    SourceDescriptor(id="techcrunch", name="TechCrunch", url="https://techcrunch.com/feed/"),
    SourceDescriptor(id="ars-technica", name="Ars Technica", url="https://arstechnica.com/feed/"),
    SourceDescriptor(id="engadget", name="Engadget", url="https://www.engadget.com/rss.xml"),
    SourceDescriptor(id="venturebeat", name="VentureBeat", url="https://venturebeat.com/feed/"),
    SourceDescriptor(id="gizmodo", name="Gizmodo", url="https://gizmodo.com/rss"),
    SourceDescriptor(id="forbes", name="Forbes", url="https://www.forbes.com/business/feed/"),
    SourceDescriptor(id="mashable", name="Mashable", url="https://mashable.com/feeds/rss/all"),
)

# Publishers occasionally leave "Test", "test2", ... items in live feeds
PLACEHOLDER_TITLE = re.compile(r"^test\d*$", re.IGNORECASE)


def is_placeholder(article: NormalizedArticle) -> bool:
    return bool(PLACEHOLDER_TITLE.match(article.title.strip()))


class RSSSource(BaseSource):
    """
    RSS/Atom feed aggregator.

    Fetches every configured feed concurrently and returns their
    articles concatenated in configuration order.
    """

    source_type = SourceType.RSS_FEED

    def __init__(
        self,
        settings: Settings,
        sources: Sequence[SourceDescriptor] = RSS_SOURCES,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(settings, client)
        self.sources = tuple(sources)

    @property
    def name(self) -> str:
        return "rss"

    async def fetch(self) -> list[NormalizedArticle]:
        """Fetch all configured feeds."""
        logger.info(f"Fetching {len(self.sources)} RSS feeds")

        async with self._http_client() as client:
            results = await asyncio.gather(
                *(self._fetch_feed(client, source) for source in self.sources)
            )

        all_articles: list[NormalizedArticle] = []
        self.results = []
        for articles, result in results:
            all_articles.extend(articles)
            self.results.append(result)

        logger.info(f"Total RSS articles fetched: {len(all_articles)}")
        return all_articles

    async def _fetch_feed(
        self,
        client: httpx.AsyncClient,
        source: SourceDescriptor,
    ) -> tuple[list[NormalizedArticle], IngestionResult]:
        """Fetch and parse a single feed."""
        start_time = time.monotonic()
        result = IngestionResult(source_name=source.name)

        try:
            logger.debug(f"Fetching RSS feed for {source.name}: {source.url}")
            response = await client.get(source.url)
            response.raise_for_status()

            content = response.text
            logger.debug(f"RSS response length for {source.name}: {len(content)} characters")

            parsed = parse_feed(
                content,
                source,
                limit=self.settings.feed_item_limit,
                fetched_at=utcnow(),
            )
            parsed_articles = list(parsed)
            articles = [a for a in parsed_articles if not is_placeholder(a)]
            result.articles_skipped = len(parsed_articles) - len(articles)

        except httpx.HTTPError as e:
            logger.warning(f"HTTP error fetching {source.name}: {e}")
            result.errors.append(str(e))
            articles = []
        except Exception as e:
            logger.error(f"Error fetching RSS feed for {source.name}: {e}")
            result.errors.append(str(e))
            articles = []

        result.articles_fetched = len(articles)
        result.duration_seconds = time.monotonic() - start_time
        logger.info(f"Added {len(articles)} articles from {source.name}")
        return articles, result
