"""Collector runner with parallel execution and failure isolation."""

import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog

from corptrends.collectors.base import PlatformCollector
from corptrends.collectors.errors import (
    CollectorError,
    CollectorErrorClass,
    ErrorRecord,
)
from corptrends.collectors.metrics import CollectorMetrics
from corptrends.collectors.models import RawArticleRecord
from corptrends.collectors.platform.hatena import HatenaBookmarkCollector
from corptrends.fetch.errors import ScrapeError
from corptrends.fetch.models import ErrorLogEntry
from corptrends.ingest.normalizer import ArticleNormalizer, NormalizeResult


logger = structlog.get_logger()


@dataclass
class PlatformRunResult:
    """Result of scraping and ingesting one platform."""

    platform: str
    fetched: int = 0
    normalize: NormalizeResult | None = None
    error: ErrorRecord | None = None
    error_log: list[ErrorLogEntry] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the platform completed without error."""
        return self.error is None

    @property
    def saved(self) -> int:
        """Get the number of records written."""
        return self.normalize.saved if self.normalize else 0


@dataclass
class RunnerResult:
    """Batch summary of a scrape run."""

    run_id: str
    started_at: datetime
    finished_at: datetime
    platform_results: dict[str, PlatformRunResult]
    dry_run: bool = False

    @property
    def total_fetched(self) -> int:
        """Get records fetched across platforms."""
        return sum(r.fetched for r in self.platform_results.values())

    @property
    def total_saved(self) -> int:
        """Get records saved across platforms."""
        return sum(r.saved for r in self.platform_results.values())

    @property
    def errors(self) -> dict[str, ErrorRecord]:
        """Get the error of every failed platform."""
        return {
            name: r.error
            for name, r in self.platform_results.items()
            if r.error is not None
        }

    @property
    def success(self) -> bool:
        """Check if every platform succeeded."""
        return not self.errors

    @property
    def duration_ms(self) -> float:
        """Get total duration in milliseconds."""
        return (self.finished_at - self.started_at).total_seconds() * 1000


class CollectorRunner:
    """Scrapes platforms and hands their records to the normalizer.

    A failing platform never stops the others: its exception is turned
    into an ``ErrorRecord`` on its ``PlatformRunResult``.
    """

    def __init__(
        self,
        normalizer: ArticleNormalizer,
        run_id: str,
        max_workers: int = 1,
    ) -> None:
        """Initialize the runner.

        Args:
            normalizer: Ingestion normalizer.
            run_id: Unique run identifier.
            max_workers: Platforms scraped in parallel (1 = sequential).
        """
        self._normalizer = normalizer
        self._run_id = run_id
        self._max_workers = max_workers
        self._metrics = CollectorMetrics.get_instance()
        self._log = logger.bind(component="runner", run_id=run_id)

    def run(
        self,
        collectors: Sequence[PlatformCollector],
        dry_run: bool = False,
        include_popular: bool = False,
    ) -> RunnerResult:
        """Scrape every collector's platform and ingest the records.

        Args:
            collectors: One collector per platform.
            dry_run: Match records without writing them.
            include_popular: Also scrape Hatena's all-category hot entries.

        Returns:
            RunnerResult with per-platform results.
        """
        started_at = datetime.now(UTC)
        self._log.info(
            "runner_started",
            platforms=[c.platform.value for c in collectors],
            max_workers=self._max_workers,
            dry_run=dry_run,
        )

        results: dict[str, PlatformRunResult] = {}
        if self._max_workers <= 1:
            for collector in collectors:
                results[collector.platform.value] = self._run_platform(
                    collector, dry_run, include_popular
                )
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                future_to_platform = {
                    executor.submit(
                        self._run_platform, collector, dry_run, include_popular
                    ): collector.platform.value
                    for collector in collectors
                }
                for future in as_completed(future_to_platform):
                    platform = future_to_platform[future]
                    results[platform] = future.result()

        finished_at = datetime.now(UTC)
        summary = RunnerResult(
            run_id=self._run_id,
            started_at=started_at,
            finished_at=finished_at,
            platform_results=results,
            dry_run=dry_run,
        )
        self._log.info(
            "runner_complete",
            duration_ms=round(summary.duration_ms, 2),
            total_fetched=summary.total_fetched,
            total_saved=summary.total_saved,
            platforms_failed=sorted(summary.errors),
        )
        return summary

    def _scrape(
        self, collector: PlatformCollector, include_popular: bool
    ) -> list[RawArticleRecord]:
        records = collector.scrape_trending()
        if include_popular and isinstance(collector, HatenaBookmarkCollector):
            seen = {r.url for r in records}
            records.extend(
                r for r in collector.scrape_popular_entries() if r.url not in seen
            )
        return records

    def _run_platform(
        self,
        collector: PlatformCollector,
        dry_run: bool,
        include_popular: bool,
    ) -> PlatformRunResult:
        platform = collector.platform.value
        log = self._log.bind(platform=platform)
        start_ns = time.perf_counter_ns()
        result = PlatformRunResult(platform=platform)
        log.info("platform_started")

        try:
            records = self._scrape(collector, include_popular)
            result.fetched = len(records)
            self._metrics.record_records(platform, len(records))
            result.normalize = self._normalizer.normalize_and_save_data(
                records, dry_run=dry_run
            )
        except ScrapeError as e:
            result.error = ErrorRecord.from_scrape_error(e, platform)
        except CollectorError as e:
            result.error = ErrorRecord.from_exception(e)
        except Exception as e:  # noqa: BLE001
            result.error = ErrorRecord(
                error_class=CollectorErrorClass.FETCH,
                message=f"Execution error: {e}",
                platform=platform,
            )

        result.error_log = collector.engine.get_error_log()
        result.duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_duration(platform, result.duration_ms)

        if result.error is not None:
            self._metrics.record_failure(platform, result.error.error_class)
            log.warning(
                "platform_failed",
                error_class=result.error.error_class.value,
                error=result.error.message,
                failed_attempts=len(result.error_log),
                duration_ms=round(result.duration_ms, 2),
            )
        else:
            log.info(
                "platform_complete",
                fetched=result.fetched,
                saved=result.saved,
                duration_ms=round(result.duration_ms, 2),
            )
        return result
