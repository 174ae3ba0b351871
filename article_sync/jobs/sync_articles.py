"""
Batch job that syncs news articles into the summary store.

Each run:
1. Fetches articles from the RSS feeds and NewsAPI
2. Deduplicates them by identity
3. Reuses or generates a summary and category tags per article
4. Upserts every enriched article
5. Removes stored articles no source reports any more
"""
from typing import Optional

import structlog

from article_sync.config import Settings, get_settings
from article_sync.core.taxonomy import VOCABULARY, ControlledVocabulary
from article_sync.models.database import Database
from article_sync.models.domain import (
    NormalizedArticle,
    StoredArticleRecord,
    SyncState,
    SyncStats,
    utcnow,
)
from article_sync.services.data_ingestion.aggregator import SourceAggregator
from article_sync.services.data_ingestion.base import SourceType
from article_sync.services.data_ingestion.feed_parser import apply_source_fallbacks
from article_sync.services.persistence import ArticleStore
from article_sync.services.reconciler import Reconciler
from article_sync.services.summarization import EnrichmentService

logger = structlog.get_logger()


class SyncJob:
    """
    Orchestrates one sync run.

    Pipeline stages:
    1. FETCHING: both fetchers run concurrently
    2. DEDUPING: first occurrence of each identity wins
    3. ENRICHING: sequential enrich + upsert, one article at a time
    4. RECONCILING: delete identities absent from this run

    A failure on a single article is counted and the run carries on.
    Anything that escapes those boundaries fails the run.
    """

    def __init__(
        self,
        settings: Settings,
        store: ArticleStore,
        aggregator: SourceAggregator,
        enricher: EnrichmentService,
        reconciler: Reconciler,
        vocabulary: ControlledVocabulary = VOCABULARY,
        skip_cleanup: bool = False,
    ):
        self.settings = settings
        self.store = store
        self.aggregator = aggregator
        self.enricher = enricher
        self.reconciler = reconciler
        self.vocabulary = vocabulary
        self.skip_cleanup = skip_cleanup
        self.stats = SyncStats()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        database: Database,
        vocabulary: ControlledVocabulary = VOCABULARY,
        skip_cleanup: bool = False,
    ) -> "SyncJob":
        """Wire the default collaborators around one database."""
        store = ArticleStore(database, max_batch_size=settings.cleanup_batch_size)
        return cls(
            settings=settings,
            store=store,
            aggregator=SourceAggregator.from_settings(settings),
            enricher=EnrichmentService(settings, store, vocabulary=vocabulary),
            reconciler=Reconciler(store, batch_size=settings.cleanup_batch_size),
            vocabulary=vocabulary,
            skip_cleanup=skip_cleanup,
        )

    async def close(self):
        """Release clients held by collaborators."""
        await self.enricher.aclose()

    def _enter(self, state: SyncState):
        self.stats.state = state
        logger.info("Sync stage", state=state.value)

    async def run(self) -> SyncStats:
        """Execute the full sync pipeline."""
        self.stats = SyncStats(started_at=utcnow())
        logger.info("Starting article sync", start_time=self.stats.started_at.isoformat())

        try:
            # Stage 1 + 2: fetch and deduplicate
            self._enter(SyncState.FETCHING)
            articles, report = await self.aggregator.fetch_all()
            self.stats.rss_fetched = report.by_type.get(SourceType.RSS_FEED, 0)
            self.stats.api_fetched = report.by_type.get(SourceType.NEWS_API, 0)
            for source_result in report.results:
                logger.info("Source result", result=str(source_result))

            self._enter(SyncState.DEDUPING)
            self.stats.unique = len(articles)
            logger.info(
                "Articles fetched",
                total=self.stats.total_fetched,
                unique=self.stats.unique,
            )

            # Stage 3: enrich and persist
            self._enter(SyncState.ENRICHING)
            for article in articles:
                await self._process_article(article)

            # Stage 4: cleanup
            self._enter(SyncState.RECONCILING)
            if self.skip_cleanup:
                logger.info("Cleanup skipped")
            else:
                cleanup = await self.reconciler.reconcile({a.identity for a in articles})
                self.stats.removed = cleanup.removed
                self.stats.cleanup_errors = list(cleanup.errors)

        except Exception as e:
            self.stats.state = SyncState.FAILED
            self.stats.finished_at = utcnow()
            logger.error("Article sync failed", error=str(e))
            raise

        self.stats.finished_at = utcnow()
        self._enter(SyncState.DONE)
        logger.info(
            "Article sync completed",
            elapsed_seconds=self.stats.elapsed_seconds,
            saved=self.stats.saved,
            errors=self.stats.errors,
            removed=self.stats.removed,
        )
        return self.stats

    async def _process_article(self, article: NormalizedArticle):
        """Enrich and upsert one article; failures only affect its own count."""
        try:
            article = apply_source_fallbacks(article)
            result = await self.enricher.enrich(article)
            record = StoredArticleRecord.from_article(
                article.with_enrichment(result),
                vocabulary=self.vocabulary,
            )
            await self.store.upsert(record)
        except Exception as e:
            self.stats.errors += 1
            logger.error("Error saving article", identity=article.identity, error=str(e))
            return

        self.stats.saved += 1
        if result.cached:
            self.stats.summaries_cached += 1
        elif result.generated:
            self.stats.summaries_generated += 1

        logger.debug(
            "Saved article",
            identity=article.identity,
            cached=result.cached,
            tags=record.category_tags,
        )


async def run_sync_job(
    settings: Optional[Settings] = None,
    skip_cleanup: bool = False,
) -> SyncStats:
    """Entry point for running one sync against the configured database."""
    settings = settings or get_settings()
    database = Database(settings.database_url)

    job: Optional[SyncJob] = None
    try:
        # Create tables if they don't exist
        await database.create_tables()

        job = SyncJob.from_settings(settings, database, skip_cleanup=skip_cleanup)
        return await job.run()
    finally:
        if job is not None:
            await job.close()
        await database.dispose()
