"""
Persistence gateway for stored article summaries.

Every call opens its own session and commits before returning, so a
read issued after a write in the same run always observes that write.
"""
from typing import Iterable, Optional

import structlog
from sqlalchemy import delete, func, select

from article_sync.models.database import Database, DBArticleSummary
from article_sync.models.domain import EnrichmentResult, StoredArticleRecord

logger = structlog.get_logger()


class ArticleStore:
    """Upsert/select/delete against the article_summaries table."""

    def __init__(self, database: Database, max_batch_size: int = 50):
        self.database = database
        self.max_batch_size = max_batch_size

    async def upsert(self, record: StoredArticleRecord) -> None:
        """Insert or replace the row keyed by the record's identity."""
        row = DBArticleSummary(
            article_url=record.identity,
            article_title=record.title,
            description=record.description,
            ai_summary=record.summary,
            image_url=record.image_url,
            published_at=record.published_at,
            source_id=record.source_id,
            source_name=record.source_name,
            category_tags=list(record.category_tags),
            category=record.primary_category,
        )
        async with self.database.async_session() as session:
            await session.merge(row)
            await session.commit()

    async def select_summary(self, identity: str) -> Optional[EnrichmentResult]:
        """Stored summary and tags for an identity, if the row exists."""
        async with self.database.async_session() as session:
            result = await session.execute(
                select(DBArticleSummary.ai_summary, DBArticleSummary.category_tags)
                .where(DBArticleSummary.article_url == identity)
            )
            row = result.one_or_none()

        if row is None:
            return None

        summary, tags = row
        return EnrichmentResult(summary=summary or "", tags=list(tags or []), cached=True)

    async def select_all_identities(self) -> set[str]:
        async with self.database.async_session() as session:
            result = await session.execute(select(DBArticleSummary.article_url))
            return set(result.scalars().all())

    async def delete_by_identities(self, batch: Iterable[str]) -> int:
        """
        Delete one bounded batch of rows.

        Returns:
            Number of rows the database reports as deleted
        """
        identities = list(batch)
        if not identities:
            return 0
        if len(identities) > self.max_batch_size:
            raise ValueError(
                f"Batch of {len(identities)} exceeds the limit of {self.max_batch_size}"
            )

        async with self.database.async_session() as session:
            result = await session.execute(
                delete(DBArticleSummary).where(DBArticleSummary.article_url.in_(identities))
            )
            await session.commit()

        logger.debug("Deleted article batch", requested=len(identities), deleted=result.rowcount)
        return result.rowcount

    async def count(self) -> int:
        async with self.database.async_session() as session:
            result = await session.execute(select(func.count(DBArticleSummary.article_url)))
            return result.scalar_one()
