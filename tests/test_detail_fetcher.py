"""Tests for per-article detail fetching.

Covers content cascade extraction, retries, degraded records, failure
isolation across a batch, ordering, and the concurrency cap.
"""

import pytest

from newsharvest.common.cascade import ContentCascade
from newsharvest.common.error_log import ErrorLog
from newsharvest.driver.detail_fetcher import DetailFetcher, extract_details
from tests.conftest import ARTICLE_1_HTML, ARTICLE_2_HTML, SITE
from tests.utils import FakeRenderClient, collect_progress, document, stub


@pytest.fixture
def make_fetcher(content_cascade, no_delay_retry):
    def factory(client, **kwargs):
        kwargs.setdefault("site_name", "Example News")
        return DetailFetcher(
            client, content_cascade, no_delay_retry, timeout_ms=1000, **kwargs
        )

    return factory


class TestExtractDetails:
    """Tests for the pure content extraction step."""

    def test_full_article(self, content_cascade):
        details = extract_details(
            document(ARTICLE_1_HTML, f"{SITE}/news/1"),
            content_cascade,
            "Example News",
        )

        assert details["content"] == "Рост рост кризис"
        assert details["author"] == "Иван Петров"
        assert details["tags"] == ("экономика", "рынки")
        assert details["published_at"] == "2024-03-01T10:00:00Z"
        assert details["image_url"] == f"{SITE}/img/lead-1.jpg"
        assert details["has_video"] is True

    def test_sparse_article_uses_defaults(self, content_cascade):
        """Missing fields shall take their defaults, not fail the article."""
        details = extract_details(
            document(ARTICLE_2_HTML), content_cascade, "Example News"
        )

        assert details["content"] == "Конфликт и спад"
        assert details["author"] == "Example News"
        assert details["tags"] == ()
        assert details["published_at"] is None
        assert details["image_url"] is None
        assert details["has_video"] is False

    def test_content_cascade_order(self):
        """The first content selector that matches shall supply the body."""
        html = """
        <html><body>
            <article>Outer <div class="Body">Inner body</div></article>
        </body></html>
        """
        cascade = ContentCascade(content=(".Body", "article"))

        assert extract_details(document(html), cascade)["content"] == "Inner body"

    def test_no_content_is_empty_string(self):
        cascade = ContentCascade(content=(".Body",))
        assert extract_details(document("<p>x</p>"), cascade)["content"] == ""

    def test_duplicate_tags_collapse(self):
        html = '<a class="t">a</a><a class="t">b</a><a class="t">a</a>'
        cascade = ContentCascade(tags=(".t",))

        assert extract_details(document(html), cascade)["tags"] == ("a", "b")


class TestFetch:
    """Tests for DetailFetcher.fetch."""

    @pytest.mark.asyncio
    async def test_successful_fetch_merges_stub_and_details(
        self, render_client, make_fetcher
    ):
        record = await make_fetcher(render_client).fetch(
            stub(
                "/news/1",
                title="Рост экономики",
                category_hint="Экономика",
                summary="Лид",
            )
        )

        assert not record.is_degraded
        assert record.title == "Рост экономики"
        assert record.category == "Экономика"
        assert record.content == "Рост рост кризис"
        assert record.summary == "Лид"
        assert record.has_video is True

    @pytest.mark.asyncio
    async def test_fails_twice_then_succeeds(self, site_pages, make_fetcher):
        """Two transient failures then success shall give a full record after 3 attempts."""
        url = f"{SITE}/news/1"
        client = FakeRenderClient(site_pages, failures={url: 2})

        record = await make_fetcher(client).fetch(stub("/news/1"))

        assert client.attempts(url) == 3
        assert record.error is None
        assert record.content == "Рост рост кризис"
        assert record.author == "Иван Петров"

    @pytest.mark.asyncio
    async def test_exhausted_retries_give_degraded_record(
        self, render_client, make_fetcher
    ):
        """An article that never loads shall become a degraded record, not an exception."""
        error_log = ErrorLog()
        fetcher = make_fetcher(render_client, error_log=error_log)

        record = await fetcher.fetch(stub("/news/404", title="Пропало"))

        assert render_client.attempts(f"{SITE}/news/404") == 3
        assert record.is_degraded
        assert record.content == ""
        assert record.title == "Пропало"
        assert record.author == "Example News"
        assert record.tags == ()
        assert record.has_video is False
        assert record.error.startswith("Failed to load article")
        assert len(error_log) == 1
        assert error_log.entries[0].url == f"{SITE}/news/404"

    @pytest.mark.asyncio
    async def test_extraction_fault_gives_degraded_record(
        self, render_client, make_fetcher, monkeypatch
    ):
        """A fault while reading the page shall be isolated to that article."""
        from newsharvest.driver import detail_fetcher as module

        def broken(*args, **kwargs):
            raise AttributeError("'NoneType' object has no attribute 'text'")

        monkeypatch.setattr(module, "extract_details", broken)
        error_log = ErrorLog()

        record = await make_fetcher(render_client, error_log=error_log).fetch(
            stub("/news/1")
        )

        assert record.is_degraded
        assert "Failed to extract article" in record.error
        assert "NoneType" in error_log.entries[0].trace

    @pytest.mark.asyncio
    async def test_debug_snapshots_limited(
        self, render_client, make_fetcher, tmp_path
    ):
        fetcher = make_fetcher(
            render_client, debug_dir=tmp_path, debug_article_limit=1
        )
        await fetcher.fetch_all([stub("/news/1"), stub("/politics/2")])

        assert (tmp_path / "article-1.html").exists()
        assert not (tmp_path / "article-2.html").exists()


class TestFetchAll:
    """Tests for concurrent batch fetching."""

    @pytest.mark.asyncio
    async def test_one_failure_is_isolated(self, render_client, make_fetcher):
        """Exactly one failing article shall yield exactly one degraded record."""
        stubs = [stub("/news/1"), stub("/news/404"), stub("/politics/2")]

        records = await make_fetcher(render_client).fetch_all(stubs)

        assert len(records) == 3
        assert [r.is_degraded for r in records] == [False, True, False]
        assert records[0].content == "Рост рост кризис"
        assert records[2].content == "Конфликт и спад"

    @pytest.mark.asyncio
    async def test_order_follows_listing_not_completion(
        self, site_pages, make_fetcher
    ):
        """Records shall come back in stub order whatever finishes first."""
        client = FakeRenderClient(
            site_pages, failures={f"{SITE}/news/1": 2}
        )
        stubs = [stub("/news/1"), stub("/politics/2")]

        records = await make_fetcher(client, concurrency=2).fetch_all(stubs)

        assert [r.url for r in records] == [s.url for s in stubs]

    @pytest.mark.asyncio
    async def test_concurrency_cap(self, site_pages, make_fetcher):
        """No more than `concurrency` renders shall be in flight at once."""
        client = FakeRenderClient(site_pages, delay=0.01)
        stubs = [stub("/news/1"), stub("/politics/2")] * 3

        await make_fetcher(client, concurrency=2).fetch_all(stubs)

        assert client.max_in_flight == 2

    @pytest.mark.asyncio
    async def test_progress_events(self, render_client, make_fetcher):
        callback, events = collect_progress()
        stubs = [stub("/news/1"), stub("/news/404")]

        await make_fetcher(render_client, on_progress=callback).fetch_all(stubs)

        assert [e.data["completed"] for e in events] == [1, 2]
        assert {e.data["url"]: e.data["degraded"] for e in events} == {
            f"{SITE}/news/1": False,
            f"{SITE}/news/404": True,
        }
        assert all(e.event_type == "article_completed" for e in events)

    @pytest.mark.asyncio
    async def test_empty_batch(self, render_client, make_fetcher):
        assert await make_fetcher(render_client).fetch_all([]) == []

    def test_invalid_concurrency(self, render_client, make_fetcher):
        with pytest.raises(ValueError):
            make_fetcher(render_client, concurrency=0)
