"""Hatena Bookmark hot-entry listing collector."""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

import httpx
from bs4 import Tag

from corptrends.collectors.base import DEFAULT_MAX_ITEMS, PlatformCollector
from corptrends.collectors.extraction import (
    extract_attribute,
    extract_link_by_selectors,
    extract_number_by_selectors,
    extract_text,
    extract_text_by_selectors,
    first_match,
)
from corptrends.collectors.models import RawArticleRecord
from corptrends.collectors.platform.constants import (
    HATENA_BASE_URL,
    HATENA_BOOKMARK_SELECTORS,
    HATENA_CONTAINER_SELECTORS,
    HATENA_DATE_SELECTORS,
    HATENA_POPULAR_URL,
    HATENA_TITLE_SELECTORS,
    HATENA_TRENDING_URL,
    HATENA_URL_SELECTORS,
)
from corptrends.collectors.text import extract_domain, parse_published_at
from corptrends.data_model.timestamps import utc_now
from corptrends.fetch.client import ScrapeEngine
from corptrends.settings.app import AppSettings
from corptrends.store.models import PlatformTag


# Hot-entry pages are served stale from caches without these
HATENA_EXTRA_HEADERS = {"Cache-Control": "no-cache", "Pragma": "no-cache"}


def _date_value(node: Tag) -> str | None:
    return extract_attribute(node, "datetime") or extract_text(node)


class HatenaBookmarkCollector(PlatformCollector):
    """Collects Hatena Bookmark hot entries.

    Entries point at external sites, so the record's domain is the article
    host and engagement is the bookmark count. Entries on excluded domains
    (exact host or any subdomain) are skipped.
    """

    platform = PlatformTag.HATENA
    base_url = HATENA_BASE_URL
    trending_url = HATENA_TRENDING_URL
    container_selectors = HATENA_CONTAINER_SELECTORS

    def __init__(  # noqa: PLR0913
        self,
        engine: ScrapeEngine | None = None,
        max_items: int = DEFAULT_MAX_ITEMS,
        clock: Callable[[], datetime] = utc_now,
        run_id: str = "",
        excluded_domains: Sequence[str] = (),
    ) -> None:
        """Initialize the collector.

        Args:
            engine: Scraping engine owned by this collector.
            max_items: Maximum records returned per listing page.
            clock: Returns the scrape time.
            run_id: Run identifier for logging.
            excluded_domains: Hosts whose entries are skipped.
        """
        super().__init__(
            engine=engine, max_items=max_items, clock=clock, run_id=run_id
        )
        self._excluded_domains = tuple(
            d.lower().strip() for d in excluded_domains if d.strip()
        )
        self._engine.set_headers(HATENA_EXTRA_HEADERS)

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        run_id: str = "",
        transport: httpx.BaseTransport | None = None,
        **kwargs: Any,
    ) -> "HatenaBookmarkCollector":
        """Build a collector from settings, excluding the configured domains.

        ``excluded_domains`` defaults to ``settings.hatena_excluded_domains``;
        an explicit keyword argument wins.

        Args:
            settings: Application settings.
            run_id: Run identifier for logging.
            transport: Optional httpx transport for the engine.
            **kwargs: Extra constructor arguments.

        Returns:
            Configured collector.
        """
        kwargs.setdefault("excluded_domains", settings.hatena_excluded_domains)
        return super().from_settings(
            settings, run_id=run_id, transport=transport, **kwargs
        )

    def scrape_popular_entries(self) -> list[RawArticleRecord]:
        """Scrape the all-category hot-entry listing.

        Returns:
            Parsed records, at most ``max_items``.

        Raises:
            ScrapeError: If the listing could not be fetched.
        """
        return self._scrape_listing(HATENA_POPULAR_URL)

    def is_excluded_domain(self, domain: str | None) -> bool:
        """Check a host against the excluded domains."""
        if not domain:
            return False
        domain = domain.lower()
        return any(
            domain == excluded or domain.endswith(f".{excluded}")
            for excluded in self._excluded_domains
        )

    def _parse_item(self, node: Tag, now: datetime) -> RawArticleRecord | None:
        title = self._require(
            extract_text_by_selectors(node, HATENA_TITLE_SELECTORS), "title"
        )
        url = self._require(
            extract_link_by_selectors(node, HATENA_URL_SELECTORS, self.base_url),
            "url",
        )
        domain = extract_domain(url)
        if self.is_excluded_domain(domain):
            self._log.debug("item_excluded", url=url, domain=domain)
            return None

        return RawArticleRecord(
            title=title,
            url=url,
            platform=self.platform,
            domain=domain,
            engagement_count=extract_number_by_selectors(
                node, HATENA_BOOKMARK_SELECTORS
            ),
            published_at=parse_published_at(
                first_match(node, HATENA_DATE_SELECTORS, _date_value), now
            ),
            scraped_at=now,
        )
