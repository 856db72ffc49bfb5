"""Unit tests for the Qiita collector."""

from datetime import UTC, datetime

import httpx
import pytest

from corptrends.collectors.errors import ParseError
from corptrends.collectors.platform.qiita import QiitaCollector
from corptrends.fetch.errors import ScrapeError
from corptrends.settings.app import AppSettings
from corptrends.store.models import PlatformTag
from tests.helpers.listings import QIITA_LISTING_HTML, html_engine, serve
from tests.helpers.time import FIXED_NOW, fixed_clock


def make_collector(
    html: str = QIITA_LISTING_HTML, max_items: int = 16
) -> QiitaCollector:
    """Create a collector serving ``html``."""
    return QiitaCollector(
        engine=html_engine("qiita", serve(html)),
        max_items=max_items,
        clock=fixed_clock,
    )


class TestQiitaCollector:
    """Tests for QiitaCollector parsing."""

    def test_parses_records(self) -> None:
        """Test well-formed items become records."""
        records = make_collector().scrape_trending()

        assert [r.url for r in records] == [
            "https://qiita.com/alice/items/abc123",
            "https://qiita.com/bob/items/def456",
        ]
        first = records[0]
        assert first.title == "Python の型ヒント入門"
        assert first.platform == PlatformTag.QIITA
        assert first.author == "alice"
        assert first.author_name == "alice"
        assert first.author_url == "https://qiita.com/alice"
        assert first.domain == "qiita.com"
        assert first.engagement_count == 128
        assert first.published_at == datetime(2024, 6, 14, 0, 0, tzinfo=UTC)
        assert first.scraped_at == FIXED_NOW

    def test_fallback_selectors(self) -> None:
        """Test absolute profile links and aria-label likes are read."""
        second = make_collector().scrape_trending()[1]

        assert second.author == "bob"
        assert second.engagement_count == 7
        assert second.published_at is None

    def test_drops_items_without_url_and_duplicates(self) -> None:
        """Test malformed items are dropped and duplicate URLs skipped."""
        records = make_collector().scrape_trending()

        assert len(records) == 2
        assert len({r.url for r in records}) == 2

    def test_caps_item_count(self) -> None:
        """Test max_items limits the records returned."""
        assert len(make_collector(max_items=1).scrape_trending()) == 1

    def test_page_without_containers(self) -> None:
        """Test a page without listing containers yields no records."""
        html = "<html><body><p>maintenance</p></body></html>"

        assert make_collector(html).scrape_trending() == []

    def test_empty_page_raises_parse_error(self) -> None:
        """Test an empty body is a parse failure."""
        with pytest.raises(ParseError):
            make_collector("   ").scrape_trending()

    def test_fetch_failure_propagates(self) -> None:
        """Test exhausted retries surface as ScrapeError."""
        collector = QiitaCollector(
            engine=html_engine("qiita", lambda _: httpx.Response(503)),
            clock=fixed_clock,
        )

        with pytest.raises(ScrapeError):
            collector.scrape_trending()

        assert len(collector.engine.get_error_log()) == 1

    def test_from_settings_uses_platform_config(self) -> None:
        """Test the engine is configured from the platform settings."""
        settings = AppSettings(
            qiita_rate_limit=45, scraping_max_items=5, scraping_timeout=12
        )

        collector = QiitaCollector.from_settings(settings, run_id="r1")

        assert collector.engine.config.requests_per_minute == 45
        assert collector.engine.config.timeout_seconds == 12
        assert collector.engine.name == "qiita"


class TestQiitaOrganization:
    """Tests for reading the organization an article was posted under."""

    def test_organization_from_link(self) -> None:
        """Test the organization link gives slug, name and page URL."""
        first, second = make_collector().scrape_trending()

        assert first.organization is None
        assert first.organization_url is None
        assert second.organization == "globex-labs"
        assert second.organization_name == "Globex Labs"
        assert second.organization_url == "https://qiita.com/organizations/globex-labs"

    def test_organization_card_name_wins(self) -> None:
        """Test the organization card name is preferred over the link text."""
        html = """
        <article>
          <h2><a href="/dan/items/x1">Post</a></h2>
          <a href="https://qiita.com/organizations/initech">initech</a>
          <span class="organizationCard_name__q">Initech Corp</span>
        </article>
        """

        record = make_collector(html).scrape_trending()[0]

        assert record.organization == "initech"
        assert record.organization_name == "Initech Corp"
        assert record.organization_url == "https://qiita.com/organizations/initech"

    def test_organization_from_article_url(self) -> None:
        """Test the slug falls back to an /organizations/ article URL."""
        html = """
        <article>
          <h2><a href="/organizations/initech/items/x2">Post</a></h2>
        </article>
        """

        record = make_collector(html).scrape_trending()[0]

        assert record.organization == "initech"
        assert record.organization_name == "initech"
        assert record.organization_url == "https://qiita.com/organizations/initech"
