"""
Source Aggregator - Collects articles from every fetcher.

This module runs the fetchers concurrently, joins their output and
collapses articles that share an identity.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

import httpx

from article_sync.config import Settings
from article_sync.models.domain import NormalizedArticle
from article_sync.services.data_ingestion.base import BaseSource, IngestionResult, SourceType
from article_sync.services.data_ingestion.newsapi import NewsAPISource
from article_sync.services.data_ingestion.rss import RSSSource

logger = logging.getLogger(__name__)


def dedupe(articles: Iterable[NormalizedArticle]) -> list[NormalizedArticle]:
    """
    Drop articles whose identity was already seen.

    Order is preserved and the first occurrence of each identity wins,
    whichever source it came from. Matching is exact.
    """
    seen: set[str] = set()
    unique = []
    for article in articles:
        if article.identity in seen:
            continue
        seen.add(article.identity)
        unique.append(article)
    return unique


@dataclass
class FetchReport:
    """What each fetcher produced in one aggregation pass."""
    counts: dict[str, int] = field(default_factory=dict)
    by_type: dict[SourceType, int] = field(default_factory=dict)
    results: list[IngestionResult] = field(default_factory=list)
    total: int = 0
    unique: int = 0


class SourceAggregator:
    """
    Aggregates articles from the feed and aggregator-API fetchers.

    Fetchers contain their own failures, so anything raised here is
    unexpected and propagates to the caller.
    """

    def __init__(self, sources: list[BaseSource]):
        self.sources = sources
        logger.info(f"Initialized aggregator with {len(self.sources)} sources")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "SourceAggregator":
        """The default pair of fetchers: RSS first, then NewsAPI."""
        return cls([
            RSSSource(settings, client=client),
            NewsAPISource(settings, client=client),
        ])

    async def fetch_all(self) -> tuple[list[NormalizedArticle], FetchReport]:
        """
        Fetch from all sources concurrently.

        Returns:
            Tuple of (deduplicated articles, per-source report)
        """
        results = await asyncio.gather(*(source.fetch() for source in self.sources))

        report = FetchReport()
        all_articles: list[NormalizedArticle] = []
        for source, articles in zip(self.sources, results):
            report.counts[source.name] = len(articles)
            report.by_type[source.source_type] = (
                report.by_type.get(source.source_type, 0) + len(articles)
            )
            report.results.extend(source.results)
            all_articles.extend(articles)

        unique = dedupe(all_articles)
        report.total = len(all_articles)
        report.unique = len(unique)

        logger.info(
            f"Aggregated {len(all_articles)} articles, "
            f"{len(unique)} after deduplication"
        )
        return unique, report
