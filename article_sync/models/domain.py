"""
Domain models for the article sync job.
These are the core entities, independent of database representation.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from article_sync.core.taxonomy import DEFAULT_GROUP, VOCABULARY, ControlledVocabulary


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Enums
# =============================================================================

class SyncState(str, Enum):
    """Stages of a sync run."""
    PENDING = "pending"
    FETCHING = "fetching"
    DEDUPING = "deduping"
    ENRICHING = "enriching"  # enrichment and persistence, one article at a time
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


# =============================================================================
# Articles
# =============================================================================

class NormalizedArticle(BaseModel):
    """An article as it flows through the pipeline."""
    identity: str  # Canonical URL, or "{title}-{ordinal}" when there is none
    title: str
    description: str = ""
    url: Optional[str] = None
    image_url: Optional[str] = None
    published_at: datetime = Field(default_factory=utcnow)
    source_id: str
    source_name: str

    # Filled in by enrichment
    ai_summary: Optional[str] = None
    category_tags: list[str] = Field(default_factory=list, max_length=3)

    @field_validator("identity", "title")
    @classmethod
    def require_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("published_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def with_enrichment(self, result: "EnrichmentResult") -> "NormalizedArticle":
        """Return a copy carrying the summary and tags."""
        return self.model_copy(
            update={"ai_summary": result.summary, "category_tags": list(result.tags)}
        )


class EnrichmentResult(BaseModel):
    """Summary and tags for one article."""
    summary: str
    tags: list[str]
    cached: bool = False  # Served from the store
    generated: bool = False  # Produced by a successful model call


class StoredArticleRecord(BaseModel):
    """Durable projection of an enriched article."""
    identity: str
    title: str
    description: str = ""
    summary: str
    image_url: Optional[str] = None
    published_at: datetime
    source_id: str
    source_name: str
    category_tags: list[str]
    primary_category: str = DEFAULT_GROUP

    @classmethod
    def from_article(
        cls,
        article: NormalizedArticle,
        vocabulary: ControlledVocabulary = VOCABULARY,
    ) -> "StoredArticleRecord":
        """Build a record, refusing articles that were never enriched."""
        if not article.ai_summary:
            raise ValueError(f"Article {article.identity} has no summary")
        if not article.category_tags:
            raise ValueError(f"Article {article.identity} has no category tags")

        return cls(
            identity=article.identity,
            title=article.title,
            description=article.description,
            summary=article.ai_summary,
            image_url=article.image_url,
            published_at=article.published_at,
            source_id=article.source_id,
            source_name=article.source_name,
            category_tags=list(article.category_tags),
            primary_category=vocabulary.primary_category(article.category_tags),
        )


# =============================================================================
# Run results
# =============================================================================

class ReconcileResult(BaseModel):
    """Outcome of removing articles no longer present upstream."""
    removed: int = 0
    errors: list[str] = Field(default_factory=list)


class SyncStats(BaseModel):
    """Counters for one sync run."""
    state: SyncState = SyncState.PENDING
    rss_fetched: int = 0
    api_fetched: int = 0
    unique: int = 0
    saved: int = 0
    errors: int = 0
    summaries_generated: int = 0
    summaries_cached: int = 0
    removed: int = 0
    cleanup_errors: list[str] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    @property
    def total_fetched(self) -> int:
        return self.rss_fetched + self.api_fetched

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at or utcnow()
        return (end - self.started_at).total_seconds()

    def __str__(self) -> str:
        lines = [
            "=" * 40,
            "SYNC SUMMARY",
            "=" * 40,
            f"Articles fetched:     {self.total_fetched} "
            f"(rss={self.rss_fetched}, api={self.api_fetched})",
            f"Unique articles:      {self.unique}",
            f"Articles saved:       {self.saved}",
            f"Errors:               {self.errors}",
            f"Summaries generated:  {self.summaries_generated}",
            f"Summaries from cache: {self.summaries_cached}",
            f"Old articles removed: {self.removed}",
        ]
        if self.cleanup_errors:
            lines.append(f"Cleanup errors:       {len(self.cleanup_errors)}")
        lines.append(f"Finished in {self.elapsed_seconds:.1f}s")
        lines.append("=" * 40)
        return "\n".join(lines)
