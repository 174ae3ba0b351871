"""
Services layer - the steps of an article sync run.

1. Data ingestion (data_ingestion/):
   - RSS/Atom feeds and the NewsAPI aggregator
   - Deduplication by article identity

2. Summarization (summarization.py):
   - Cached, LLM-generated summary plus up to three category tags

3. Persistence (persistence.py):
   - Upsert/select/delete against the article_summaries table

4. Reconciler (reconciler.py):
   - Batched removal of articles no source reports any more
"""

from article_sync.services.persistence import ArticleStore
from article_sync.services.rate_limiter import RateLimiter
from article_sync.services.reconciler import Reconciler
from article_sync.services.summarization import (
    SENTINEL_SUMMARY,
    EnrichmentService,
    parse_enrichment_response,
)

__all__ = [
    # Persistence
    "ArticleStore",
    # Cleanup
    "Reconciler",
    # Summarization
    "EnrichmentService",
    "RateLimiter",
    "SENTINEL_SUMMARY",
    "parse_enrichment_response",
]
