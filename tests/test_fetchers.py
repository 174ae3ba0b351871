"""
Tests for the RSS and NewsAPI fetchers.

HTTP is served by httpx.MockTransport, so no request leaves the process.
"""
import httpx

from article_sync.services.data_ingestion.base import SourceDescriptor
from article_sync.services.data_ingestion.newsapi import NewsAPISource
from article_sync.services.data_ingestion.rss import RSSSource, is_placeholder
from tests.conftest import make_article

FEED_A = SourceDescriptor(id="feed-a", name="Feed A", url="https://a.example.com/feed")
FEED_B = SourceDescriptor(id="feed-b", name="Feed B", url="https://b.example.com/feed")

FEED_A_BODY = """<?xml version="1.0"?>
<rss version="2.0"><channel>
  <item><title>Test1</title><link>https://a.example.com/test1</link></item>
  <item><title>Real story</title><link>https://a.example.com/real</link></item>
  <item><title>Testing the new phone</title><link>https://a.example.com/phone</link></item>
</channel></rss>
"""


def client_for(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRSSSource:
    """Tests for the RSS fetcher."""

    async def test_placeholder_titles_excluded(self, settings):
        def handler(request):
            return httpx.Response(200, text=FEED_A_BODY)

        async with client_for(handler) as client:
            source = RSSSource(settings, sources=[FEED_A], client=client)
            articles = await source.fetch()

        assert [a.title for a in articles] == ["Real story", "Testing the new phone"]
        assert source.results[0].articles_skipped == 1

    async def test_failing_feed_is_isolated(self, settings):
        """A non-2xx feed contributes nothing and the other feed still counts."""
        def handler(request):
            if request.url.host == "b.example.com":
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, text=FEED_A_BODY)

        async with client_for(handler) as client:
            source = RSSSource(settings, sources=[FEED_A, FEED_B], client=client)
            articles = await source.fetch()

        assert len(articles) == 2
        results = {r.source_name: r for r in source.results}
        assert results["Feed A"].success
        assert not results["Feed B"].success
        assert results["Feed B"].articles_fetched == 0

    async def test_network_error_is_isolated(self, settings):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as client:
            source = RSSSource(settings, sources=[FEED_A], client=client)
            articles = await source.fetch()

        assert articles == []
        assert source.results[0].errors

    def test_is_placeholder(self):
        assert is_placeholder(make_article(title="Test"))
        assert is_placeholder(make_article(title="test42"))
        assert not is_placeholder(make_article(title="Test drive"))


NEWSAPI_BODY = {
    "status": "ok",
    "totalResults": 4,
    "articles": [
        {
            "source": {"id": "the-verge", "name": "The Verge"},
            "title": "Verge headline",
            "description": "Verge description",
            "url": "https://theverge.com/story",
            "urlToImage": "https://theverge.com/img.jpg",
            "publishedAt": "2024-01-15T12:00:00Z",
        },
        {
            "source": {"id": None, "name": "Some Blog"},
            "title": "Not allow-listed",
            "url": "https://blog.example.com/post",
        },
        {
            "source": {"id": "wired", "name": "Wired"},
            "title": "[Removed]",
            "url": "https://removed.com",
        },
        {
            "source": {"id": "cnbc", "name": "CNBC"},
            "title": "No url here",
            "description": None,
            "url": None,
        },
    ],
}


class TestNewsAPISource:
    """Tests for the NewsAPI fetcher."""

    def test_build_params(self, settings):
        source = NewsAPISource(settings.model_copy(update={"newsapi_key": "k"}))
        params = source.build_params()

        assert params["apiKey"] == "k"
        assert params["language"] == "en"
        assert params["pageSize"] == 100
        assert params["sources"].split(",")[:2] == ["techcrunch", "the-verge"]

    def test_match_source(self, settings):
        source = NewsAPISource(settings)
        assert source.match_source("The Verge").id == "the-verge"
        assert source.match_source("CNBC Markets").id == "cnbc"
        assert source.match_source("Some Blog") is None
        assert source.match_source(None) is None

    async def test_fetch_filters_and_maps(self, settings):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json=NEWSAPI_BODY)

        async with client_for(handler) as client:
            source = NewsAPISource(
                settings.model_copy(update={"newsapi_key": "secret"}),
                client=client,
            )
            articles = await source.fetch()

        assert seen["params"]["apiKey"] == "secret"
        assert [a.title for a in articles] == ["Verge headline", "No url here"]

        verge = articles[0]
        assert verge.identity == "https://theverge.com/story"
        assert verge.source_id == "the-verge"
        assert verge.image_url == "https://theverge.com/img.jpg"
        assert verge.published_at.year == 2024

        # identity falls back to "{title}-{index}" among allow-listed items
        assert articles[1].identity == "No url here-2"
        assert articles[1].source_id == "cnbc"
        assert articles[1].description == ""

    async def test_out_of_range_date_keeps_article(self, settings):
        body = {
            "status": "ok",
            "articles": [
                {
                    "source": {"id": "techcrunch", "name": "TechCrunch"},
                    "title": "Ancient date",
                    "url": "https://techcrunch.com/ancient",
                    "publishedAt": "0001-01-01T00:00:00+05:00",
                },
                {
                    "source": {"id": "techcrunch", "name": "TechCrunch"},
                    "title": "Normal date",
                    "url": "https://techcrunch.com/normal",
                    "publishedAt": "2024-01-15T12:00:00Z",
                },
            ],
        }

        async with client_for(lambda request: httpx.Response(200, json=body)) as client:
            source = NewsAPISource(
                settings.model_copy(update={"newsapi_key": "secret"}),
                client=client,
            )
            articles = await source.fetch()

        assert [a.title for a in articles] == ["Ancient date", "Normal date"]
        assert articles[0].published_at.year >= 2024  # fetch time

    async def test_malformed_records_are_skipped(self, settings):
        body = {
            "status": "ok",
            "articles": [
                "not an object",
                {"source": "Wired", "title": "Source is a string"},
                {
                    "source": {"id": "wired", "name": "Wired"},
                    "title": 123,
                    "url": "https://wired.com/numeric",
                },
                {
                    "source": {"id": "wired", "name": "Wired"},
                    "title": "Survivor",
                    "url": "https://wired.com/survivor",
                },
            ],
        }

        async with client_for(lambda request: httpx.Response(200, json=body)) as client:
            source = NewsAPISource(
                settings.model_copy(update={"newsapi_key": "secret"}),
                client=client,
            )
            articles = await source.fetch()

        assert [a.title for a in articles] == ["Survivor"]
        assert articles[0].identity == "https://wired.com/survivor"
        assert source.results[0].articles_skipped == 3
        assert source.results[0].errors == []

    async def test_missing_articles_is_empty(self, settings):
        def handler(request):
            return httpx.Response(200, json={"status": "ok"})

        async with client_for(handler) as client:
            source = NewsAPISource(
                settings.model_copy(update={"newsapi_key": "secret"}),
                client=client,
            )
            articles = await source.fetch()

        assert articles == []
        assert source.results[0].errors == ["No articles found"]

    async def test_error_status_is_empty(self, settings):
        def handler(request):
            return httpx.Response(401, json={"status": "error", "message": "bad key"})

        async with client_for(handler) as client:
            source = NewsAPISource(
                settings.model_copy(update={"newsapi_key": "wrong"}),
                client=client,
            )
            articles = await source.fetch()

        assert articles == []
        assert not source.results[0].success

    async def test_no_api_key_skips_request(self, settings):
        def handler(request):
            raise AssertionError("no request expected")

        async with client_for(handler) as client:
            source = NewsAPISource(settings, client=client)
            articles = await source.fetch()

        assert articles == []
