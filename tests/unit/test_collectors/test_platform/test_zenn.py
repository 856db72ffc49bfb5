"""Unit tests for the Zenn collector."""

from datetime import UTC, datetime

from corptrends.collectors.platform.zenn import ZennCollector
from corptrends.store.models import PlatformTag
from tests.helpers.listings import ZENN_LISTING_HTML, html_engine, serve
from tests.helpers.time import fixed_clock


def make_collector() -> ZennCollector:
    """Create a collector serving the Zenn fixture."""
    return ZennCollector(
        engine=html_engine("zenn", serve(ZENN_LISTING_HTML)), clock=fixed_clock
    )


class TestZennCollector:
    """Tests for ZennCollector parsing."""

    def test_parses_records(self) -> None:
        """Test items with a title and article URL become records."""
        records = make_collector().scrape_trending()

        assert [r.url for r in records] == [
            "https://zenn.dev/carol/articles/intro-go",
            "https://zenn.dev/p/acme/articles/platform-team",
            "https://zenn.dev/eve/articles/edge",
        ]
        assert all(r.platform == PlatformTag.ZENN for r in records)

    def test_handle_and_display_name(self) -> None:
        """Test the handle comes from the profile link, the name from the text."""
        first = make_collector().scrape_trending()[0]

        assert first.author == "carol"
        assert first.author_name == "carol_display"
        assert first.author_url == "https://zenn.dev/@carol"
        assert first.engagement_count == 42
        assert first.published_at == datetime(2024, 6, 14, 0, 0, tzinfo=UTC)
        assert first.domain == "zenn.dev"

    def test_publication_article_uses_avatar_alt(self) -> None:
        """Test publication articles have no handle and fall back to img alt."""
        second = make_collector().scrape_trending()[1]

        assert second.author == "dave"
        assert second.author_name == "dave"
        assert second.author_url is None
        assert second.engagement_count == 5
        assert second.published_at is None

    def test_handle_from_article_path(self) -> None:
        """Test the handle is taken from /{user}/articles/ without a profile link."""
        third = make_collector().scrape_trending()[2]

        assert third.author == "eve"
        # "eveinAcme株式会社3日前 12" cleans down to the handle
        assert third.author_name == "eve"
        assert third.author_url == "https://zenn.dev/@eve"
        assert third.engagement_count == 0


class TestZennPublication:
    """Tests for recording a publication as the article's organization."""

    def test_publication_from_article_url(self) -> None:
        """Test /p/{slug}/articles/ URLs carry the publication."""
        first, second, _ = make_collector().scrape_trending()

        assert first.organization is None
        assert second.organization == "acme"
        assert second.organization_name == "Acme Tech Blog"
        assert second.organization_url == "https://zenn.dev/p/acme"

    def test_publication_from_link(self) -> None:
        """Test a publication link is read when the URL is a user article."""
        html = """
        <div class="ArticleList_item__b1">
          <a href="/frank/articles/x"><h2>Post</h2></a>
          <a href="https://zenn.dev/p/initech">Initech Tech</a>
        </div>
        """
        collector = ZennCollector(
            engine=html_engine("zenn", serve(html)), clock=fixed_clock
        )

        record = collector.scrape_trending()[0]

        assert record.author == "frank"
        assert record.organization == "initech"
        assert record.organization_name == "Initech Tech"
        assert record.organization_url == "https://zenn.dev/p/initech"
