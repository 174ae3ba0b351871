"""
Shared fixtures.

Databases are temporary SQLite files accessed through aiosqlite, and no
fixture touches the network.
"""
from datetime import datetime, timezone

import pytest

from article_sync.config import Settings
from article_sync.models.database import Database
from article_sync.models.domain import NormalizedArticle
from article_sync.services.persistence import ArticleStore


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'articles.db'}",
        newsapi_key=None,
        anthropic_api_key=None,
        log_level="DEBUG",
    )


@pytest.fixture
async def database(settings):
    db = Database(settings.database_url)
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
async def store(database):
    return ArticleStore(database, max_batch_size=50)


def make_article(identity: str = "https://example.com/a", **overrides) -> NormalizedArticle:
    fields = {
        "identity": identity,
        "title": "Example headline",
        "description": "Example body text.",
        "url": identity if identity.startswith("http") else None,
        "published_at": datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc),
        "source_id": "ars-technica",
        "source_name": "Ars Technica",
    }
    fields.update(overrides)
    return NormalizedArticle(**fields)
