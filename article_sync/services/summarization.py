"""
Summarization service using Claude.
Generates a short summary and category tags for each article.
"""
import re
from typing import Optional, Protocol

import structlog
from anthropic import AsyncAnthropic

from article_sync.config import Settings
from article_sync.core.taxonomy import VOCABULARY, ControlledVocabulary
from article_sync.models.domain import EnrichmentResult, NormalizedArticle
from article_sync.services.rate_limiter import RateLimiter

logger = structlog.get_logger()

SENTINEL_SUMMARY = "AI summary temporarily unavailable"
MAX_TAGS = 3

_SUMMARY_SECTION = re.compile(r"SUMMARY:\s*(.*?)(?=CATEGORIES:|$)", re.DOTALL)
_CATEGORIES_SECTION = re.compile(r"CATEGORIES:\s*(.*)$", re.DOTALL)


class SummaryLookup(Protocol):
    async def select_summary(self, identity: str) -> Optional[EnrichmentResult]:
        ...


def fallback_result(vocabulary: ControlledVocabulary = VOCABULARY) -> EnrichmentResult:
    return EnrichmentResult(summary=SENTINEL_SUMMARY, tags=[vocabulary.default_tag])


def match_tags(
    text: str,
    vocabulary: ControlledVocabulary = VOCABULARY,
    limit: int = MAX_TAGS,
) -> list[str]:
    """
    Vocabulary tags named in `text`, in the order they appear.

    Tags are located rather than split on commas because some tag names
    contain commas themselves. Anything not in the vocabulary is ignored.
    """
    found = []
    for tag in vocabulary.tags:
        index = text.find(tag)
        if index >= 0:
            found.append((index, -len(tag), tag))
    found.sort()

    tags: list[str] = []
    covered_until = -1
    for index, neg_length, tag in found:
        if index < covered_until:
            continue  # part of a longer tag already taken
        tags.append(tag)
        covered_until = index - neg_length
        if len(tags) == limit:
            break
    return tags


def parse_enrichment_response(
    text: str,
    vocabulary: ControlledVocabulary = VOCABULARY,
) -> EnrichmentResult:
    """
    Parse a "SUMMARY: ... CATEGORIES: ..." response.

    A response without a usable summary section is treated as a failure.
    A missing or unusable categories section only costs the tags, which
    fall back to the default tag.
    """
    summary_match = _SUMMARY_SECTION.search(text or "")
    summary = summary_match.group(1).strip() if summary_match else ""
    if not summary:
        logger.warning("Malformed summary response", response=(text or "")[:200])
        return fallback_result(vocabulary)

    tags: list[str] = []
    categories_match = _CATEGORIES_SECTION.search(text)
    if categories_match:
        tags = match_tags(categories_match.group(1), vocabulary)

    if not tags:
        tags = [vocabulary.default_tag]

    return EnrichmentResult(summary=summary, tags=tags, generated=True)


class EnrichmentService:
    """
    Produces summaries and tags, reusing stored ones when available.

    At most one model call is made per article per run; stored results
    are reused verbatim even if the upstream text has since changed.
    """

    def __init__(
        self,
        settings: Settings,
        store: SummaryLookup,
        vocabulary: ControlledVocabulary = VOCABULARY,
        client: Optional[AsyncAnthropic] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.settings = settings
        self.store = store
        self.vocabulary = vocabulary

        self._client = client
        self._owns_client = False
        if self._client is None and settings.anthropic_api_key:
            self._client = AsyncAnthropic(api_key=settings.anthropic_api_key)
            self._owns_client = True

        self.rate_limiter = rate_limiter or RateLimiter(
            settings.summary_requests_per_minute, period_seconds=60
        )

    async def aclose(self):
        """Close the API client if this service created it."""
        if self._owns_client and self._client is not None:
            await self._client.close()
        self._client = None

    async def enrich(self, article: NormalizedArticle) -> EnrichmentResult:
        """Stored summary and tags if usable, otherwise freshly generated ones."""
        cached = await self._lookup(article.identity)
        if cached is not None:
            return cached
        return await self.generate(article)

    def is_usable(self, result: EnrichmentResult) -> bool:
        """A stored result counts only if it has real text and at least one tag."""
        summary = (result.summary or "").strip()
        return bool(summary) and summary != SENTINEL_SUMMARY and len(result.tags) > 0

    async def _lookup(self, identity: str) -> Optional[EnrichmentResult]:
        try:
            stored = await self.store.select_summary(identity)
        except Exception as e:
            logger.warning("Summary cache lookup failed", identity=identity, error=str(e))
            return None

        if stored is None or not self.is_usable(stored):
            return None

        return EnrichmentResult(summary=stored.summary, tags=list(stored.tags), cached=True)

    async def generate(self, article: NormalizedArticle) -> EnrichmentResult:
        """Call the model once; any failure gives the sentinel result."""
        if self._client is None:
            logger.warning("Anthropic API key not configured", identity=article.identity)
            return fallback_result(self.vocabulary)

        prompt = self.build_prompt(article)

        try:
            await self.rate_limiter.acquire()
            response = await self._client.messages.create(
                model=self.settings.summary_model,
                max_tokens=self.settings.summary_max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            logger.error(
                "Error generating AI summary and categories",
                identity=article.identity,
                error=str(e),
            )
            return fallback_result(self.vocabulary)

        return parse_enrichment_response(_response_text(response), self.vocabulary)

    def build_prompt(self, article: NormalizedArticle) -> str:
        """Build the summarization prompt."""
        content = (article.description or "")[: self.settings.max_prompt_chars]

        return f"""Analyze this news article and provide:
1. A 3-4 sentence summary focusing on the most important facts, broader context, and potential impact
2. Select 1-3 most relevant categories from the list below

Title: {article.title}
Content: {content}

Available categories:
{self.vocabulary.prompt_listing()}

Format your response as:
SUMMARY: [your summary]
CATEGORIES: [category1, category2, category3]

Rules for categories:
- Select minimum 1, maximum 3 categories
- Use exact category names from the list
- Choose the most specific and relevant categories
- Order by relevance (most relevant first)"""


def _response_text(response) -> str:
    content = getattr(response, "content", None) or []
    if not content or getattr(content[0], "type", None) != "text":
        return ""
    return content[0].text
