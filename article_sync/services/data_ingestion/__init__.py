"""
Data ingestion for the article sync job.

This module provides fetchers for the two kinds of upstream source:
- RSS/Atom feeds from a fixed list of news sites
- The NewsAPI top-headlines endpoint
plus the feed parser and identity-based deduplication.
"""

from article_sync.services.data_ingestion.base import (
    BaseSource,
    IngestionResult,
    SourceDescriptor,
    SourceType,
)
from article_sync.services.data_ingestion.feed_parser import ParsedFeed, parse_feed
from article_sync.services.data_ingestion.newsapi import NewsAPISource
from article_sync.services.data_ingestion.rss import RSSSource
from article_sync.services.data_ingestion.aggregator import SourceAggregator, dedupe

__all__ = [
    "BaseSource",
    "IngestionResult",
    "SourceDescriptor",
    "SourceType",
    "ParsedFeed",
    "parse_feed",
    "NewsAPISource",
    "RSSSource",
    "SourceAggregator",
    "dedupe",
]
