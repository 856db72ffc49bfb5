"""Base class for the platform listing collectors."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime
from typing import Any, ClassVar, Self

import httpx
import structlog
from bs4 import BeautifulSoup, Tag

from corptrends.collectors.errors import ParseError, SchemaError
from corptrends.collectors.models import RawArticleRecord
from corptrends.data_model.timestamps import utc_now
from corptrends.fetch.client import ScrapeEngine
from corptrends.fetch.config import ScrapeConfig
from corptrends.fetch.models import FetchResult
from corptrends.settings.app import AppSettings
from corptrends.store.models import PlatformTag


logger = structlog.get_logger()

# Cap on parsed items per listing page
DEFAULT_MAX_ITEMS = 16


class PlatformCollector(ABC):
    """Scrapes one platform's listing pages into ``RawArticleRecord`` lists.

    Subclasses declare the listing URL and container selectors and
    implement ``_parse_item``. The base class owns the engine, picks the
    first container selector that yields nodes, drops malformed items with
    a warning, skips duplicate URLs and caps the number of records.
    """

    platform: ClassVar[PlatformTag]
    base_url: ClassVar[str]
    trending_url: ClassVar[str]
    container_selectors: ClassVar[tuple[str, ...]]

    def __init__(
        self,
        engine: ScrapeEngine | None = None,
        max_items: int = DEFAULT_MAX_ITEMS,
        clock: Callable[[], datetime] = utc_now,
        run_id: str = "",
    ) -> None:
        """Initialize the collector.

        Args:
            engine: Scraping engine owned by this collector.
            max_items: Maximum records returned per listing page.
            clock: Returns the scrape time used for scraped_at and
                relative dates.
            run_id: Run identifier for logging.
        """
        self._engine = engine or ScrapeEngine(self.platform.value, run_id=run_id)
        self._max_items = max_items
        self._clock = clock
        self._run_id = run_id
        self._log = logger.bind(
            component="collector",
            platform=self.platform.value,
            run_id=run_id,
        )

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        run_id: str = "",
        transport: httpx.BaseTransport | None = None,
        **kwargs: Any,
    ) -> Self:
        """Build a collector whose engine uses the platform's settings.

        Args:
            settings: Application settings.
            run_id: Run identifier for logging.
            transport: Optional httpx transport for the engine.
            **kwargs: Extra constructor arguments.

        Returns:
            Configured collector.
        """
        engine = ScrapeEngine(
            cls.platform.value,
            config=ScrapeConfig.for_platform(settings, cls.platform.value),
            transport=transport,
            run_id=run_id,
        )
        return cls(
            engine=engine,
            max_items=settings.scraping_max_items,
            run_id=run_id,
            **kwargs,
        )

    @property
    def engine(self) -> ScrapeEngine:
        """Get the collector's engine."""
        return self._engine

    def scrape_trending(self) -> list[RawArticleRecord]:
        """Scrape the platform's trending listing.

        Returns:
            Parsed records, at most ``max_items``.

        Raises:
            ScrapeError: If the listing could not be fetched.
        """
        return self._scrape_listing(self.trending_url)

    def _scrape_listing(self, url: str) -> list[RawArticleRecord]:
        now = self._clock()
        records = self._engine.scrape(url, lambda result: self._parse_page(result, now))
        self._log.info("listing_scraped", url=url, records=len(records))
        return records

    def _parse_page(self, result: FetchResult, now: datetime) -> list[RawArticleRecord]:
        """Parse a listing page into records.

        Raises:
            ParseError: If the body is empty.
        """
        if not result.body_bytes.strip():
            raise ParseError("Empty listing page", platform=self.platform.value)

        soup = BeautifulSoup(result.text, "lxml")
        containers = self._select_containers(soup)
        if not containers:
            self._log.warning("no_containers_found", url=result.final_url)
            return []

        records: list[RawArticleRecord] = []
        seen_urls: set[str] = set()
        for node in containers:
            if len(records) >= self._max_items:
                break
            try:
                record = self._parse_item(node, now)
            except SchemaError as e:
                self._log.warning("item_dropped", reason=e.message, field=e.field)
                continue
            if record is None or record.url in seen_urls:
                continue
            seen_urls.add(record.url)
            records.append(record)
        return records

    def _select_containers(self, soup: BeautifulSoup) -> list[Tag]:
        for selector in self.container_selectors:
            nodes = soup.select(selector)
            if nodes:
                self._log.debug(
                    "containers_selected", selector=selector, count=len(nodes)
                )
                return list(nodes)
        return []

    def _require(self, value: str | None, field: str) -> str:
        """Return ``value`` or raise SchemaError for a missing required field."""
        if not value:
            raise SchemaError(
                f"Missing required field: {field}",
                platform=self.platform.value,
                field=field,
            )
        return value

    @abstractmethod
    def _parse_item(self, node: Tag, now: datetime) -> RawArticleRecord | None:
        """Parse one listing container.

        Args:
            node: Container element.
            now: Scrape time.

        Returns:
            The record, or None if the item is deliberately skipped.

        Raises:
            SchemaError: If title or url is missing.
        """
