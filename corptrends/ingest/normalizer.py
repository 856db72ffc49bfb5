"""Ingestion of scraped records into Article rows."""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from corptrends.collectors.models import RawArticleRecord
from corptrends.matcher.company_matcher import CompanyMatcher, MatchFields
from corptrends.store.errors import StateStoreError
from corptrends.store.models import (
    Article,
    ArticleEventType,
    Company,
    PlatformTag,
)
from corptrends.store.store import StateStore


logger = structlog.get_logger()


@dataclass
class NormalizeResult:
    """Outcome of one normalize-and-save batch.

    In a dry run ``saved``/``new``/``updated`` are not filled; ``total`` and
    ``matched`` report what a real run would have processed.
    """

    total: int = 0
    saved: int = 0
    new: int = 0
    updated: int = 0
    unchanged: int = 0
    matched: int = 0
    failed: int = 0
    dry_run: bool = False


def engagement_fields(record: RawArticleRecord) -> dict[str, int | None]:
    """Map a record's engagement count onto the platform's counter column.

    Hatena Bookmark counts bookmarks; Qiita and Zenn count likes.
    """
    if record.platform == PlatformTag.HATENA:
        return {"bookmark_count": record.engagement_count, "likes_count": None}
    return {"bookmark_count": None, "likes_count": record.engagement_count}


class ArticleNormalizer:
    """Matches scraped records to companies and upserts them by URL."""

    def __init__(
        self,
        store: StateStore,
        matcher: CompanyMatcher,
        run_id: str = "",
        create_companies: bool = False,
    ) -> None:
        """Initialize the normalizer.

        Args:
            store: State store for persistence.
            matcher: Company matcher.
            run_id: Run identifier for logging.
            create_companies: Create inactive companies for unmatched
                organization articles (never in a dry run).
        """
        self._store = store
        self._matcher = matcher
        self._create_companies = create_companies
        self._log = logger.bind(component="ingest", run_id=run_id)

    def to_article(self, record: RawArticleRecord, company_id: int | None) -> Article:
        """Build the Article row for a record."""
        return Article(
            url=record.url,
            title=record.title,
            domain=record.domain,
            platform=record.platform.value,
            platform_id=self._store.get_platform_id(record.platform.value),
            company_id=company_id,
            author=record.author,
            author_name=record.author_name,
            author_url=record.author_url,
            organization=record.organization,
            organization_name=record.organization_name,
            organization_url=record.organization_url,
            published_at=record.published_at,
            scraped_at=record.scraped_at,
            **engagement_fields(record),
        )

    def _identify(self, fields: MatchFields, dry_run: bool) -> Company | None:
        if self._create_companies and not dry_run:
            try:
                return self._matcher.identify_or_create_company(fields, self._store)
            except StateStoreError as e:
                self._log.error(
                    "company_create_failed", url=fields.url, error=str(e)
                )
                return None
        return self._matcher.identify_company(fields)

    def normalize_and_save_data(
        self,
        records: Iterable[RawArticleRecord],
        dry_run: bool = False,
    ) -> NormalizeResult:
        """Match and upsert a batch of records.

        A record whose write fails is logged and counted as failed; the rest
        of the batch continues.

        Args:
            records: Records from one collector.
            dry_run: Match without writing.

        Returns:
            NormalizeResult with batch counts.
        """
        result = NormalizeResult(dry_run=dry_run)

        for record in records:
            result.total += 1
            company = self._identify(MatchFields.from_record(record), dry_run)
            if company is not None:
                result.matched += 1

            if dry_run:
                self._log.info(
                    "dry_run_article",
                    url=record.url,
                    company_id=company.id if company else None,
                )
                continue

            try:
                upsert = self._store.upsert_article(
                    self.to_article(record, company.id if company else None)
                )
            except StateStoreError as e:
                result.failed += 1
                self._log.error("article_save_failed", url=record.url, error=str(e))
                continue

            result.saved += 1
            if upsert.event_type == ArticleEventType.NEW:
                result.new += 1
            elif upsert.event_type == ArticleEventType.UPDATED:
                result.updated += 1
            else:
                result.unchanged += 1

        self._log.info(
            "normalize_complete",
            total=result.total,
            saved=result.saved,
            new=result.new,
            updated=result.updated,
            matched=result.matched,
            failed=result.failed,
            dry_run=dry_run,
        )
        return result

    def rematch_articles(self, only_unassigned: bool = True) -> int:
        """Re-run matching over stored articles.

        Args:
            only_unassigned: Only consider articles without a company.

        Returns:
            Number of articles whose company was assigned or changed.
        """
        assigned = 0
        for article in self._store.list_articles(unassigned_only=only_unassigned):
            company = self._matcher.identify_company(MatchFields.from_article(article))
            if company is None or company.id is None or article.id is None:
                continue
            if company.id == article.company_id:
                continue
            self._store.assign_article_company(article.id, company.id)
            assigned += 1

        self._log.info(
            "rematch_complete", assigned=assigned, only_unassigned=only_unassigned
        )
        return assigned
