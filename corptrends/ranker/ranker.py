"""Company ranking generation per period."""

import threading
import time
from collections import defaultdict
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from corptrends.data_model.timestamps import (
    end_of_day,
    ensure_utc,
    start_of_day,
    utc_now,
)
from corptrends.ranker.constants import (
    DEFAULT_EPOCH_YEAR,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_PERIOD_DAYS,
    DEFAULT_RANKING_LIMIT,
)
from corptrends.ranker.metrics import RankerMetrics
from corptrends.ranker.models import (
    CompanyScore,
    GeneratedRanking,
    PeriodDates,
    RankingEntry,
    RankingPeriod,
)
from corptrends.ranker.scorer import InfluenceScoreCalculator
from corptrends.settings.app import AppSettings
from corptrends.store.models import CompanyRanking
from corptrends.store.store import StateStore


logger = structlog.get_logger()


def assign_dense_ranks(scores: Iterable[CompanyScore]) -> list[RankingEntry]:
    """Order scores and assign dense ranks.

    Scores are sorted descending with company id as tie-breaker. Equal
    scores share a rank and the next distinct score gets the next integer:
    [200, 200, 100] ranks as [1, 1, 2].

    Args:
        scores: Company scores (companies must be stored).

    Returns:
        Ranking entries in rank order.
    """
    ordered = sorted(scores, key=lambda s: (-s.total_score, s.company.id or 0))
    entries: list[RankingEntry] = []
    rank = 0
    previous_score: float | None = None

    for score in ordered:
        if previous_score is None or score.total_score != previous_score:
            rank += 1
            previous_score = score.total_score
        entries.append(
            RankingEntry(
                company_id=score.company.id or 0,
                company_name=score.company.name,
                rank_position=rank,
                total_score=score.total_score,
                article_count=score.article_count,
                total_bookmarks=score.total_bookmarks,
            )
        )
    return entries


class RankingGenerator:
    """Generates, stores and queries per-period company rankings.

    Periods are independent units of work. Generation of the same period is
    serialized by a per-period lock, and the stored ranking set of a window
    is swapped in a single transaction.
    """

    def __init__(
        self,
        store: StateStore,
        calculator: InfluenceScoreCalculator,
        settings: AppSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
        run_id: str = "",
    ) -> None:
        """Initialize the generator.

        Args:
            store: State store.
            calculator: Influence score calculator.
            settings: Source of period day counts and epoch year.
            clock: Returns "now" for default reference dates and
                calculated_at.
            run_id: Run identifier for logging.
        """
        self._store = store
        self._calculator = calculator
        self._clock = clock
        if settings is not None:
            self._period_days = settings.period_days()
            self._epoch_year = settings.ranking_epoch_year
        else:
            self._period_days = dict(DEFAULT_PERIOD_DAYS)
            self._epoch_year = DEFAULT_EPOCH_YEAR
        self._locks = {period: threading.Lock() for period in RankingPeriod}
        self._metrics = RankerMetrics.get_instance()
        self._log = logger.bind(component="ranker", run_id=run_id)

    def calculate_period_dates(
        self,
        period: RankingPeriod | str,
        reference_date: datetime,
    ) -> PeriodDates:
        """Compute the window of a period ending on ``reference_date``.

        Args:
            period: Ranking period.
            reference_date: Last day of the window (naive means UTC).

        Returns:
            PeriodDates with start at 00:00 and end at 23:59:59.999999.

        Raises:
            UnknownPeriodError: If the period is not recognized.
        """
        period = RankingPeriod.parse(period)
        reference = ensure_utc(reference_date)
        end = end_of_day(reference)
        days = self._period_days[period.value]
        if days is None:
            start = datetime(self._epoch_year, 1, 1, tzinfo=UTC)
        else:
            start = start_of_day(reference - timedelta(days=days))
        return PeriodDates(start=start, end=end)

    def generate_ranking_for_period(
        self,
        period: RankingPeriod | str,
        reference_date: datetime | None = None,
    ) -> GeneratedRanking:
        """Score, rank and store one period.

        Args:
            period: Ranking period.
            reference_date: Last day of the window (defaults to now).

        Returns:
            The snapshot: its calculated_at and the entries in rank order.

        Raises:
            UnknownPeriodError: If the period is not recognized.
        """
        period = RankingPeriod.parse(period)
        dates = self.calculate_period_dates(period, reference_date or self._clock())
        log = self._log.bind(period=period.value)
        start_ns = time.perf_counter_ns()

        with self._locks[period]:
            scores = self._calculator.calculate_all_companies_score(
                period.value, dates.start, dates.end
            )
            entries = assign_dense_ranks(scores.values())
            calculated_at = ensure_utc(self._clock())
            self._store.replace_rankings(
                period.value,
                dates.start,
                dates.end,
                [
                    CompanyRanking(
                        company_id=entry.company_id,
                        ranking_period=period.value,
                        rank_position=entry.rank_position,
                        total_score=entry.total_score,
                        article_count=entry.article_count,
                        total_bookmarks=entry.total_bookmarks,
                        period_start=dates.start,
                        period_end=dates.end,
                        calculated_at=calculated_at,
                    )
                    for entry in entries
                ],
            )

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_ranking(period.value, len(entries), duration_ms)
        log.info(
            "ranking_generated",
            ranked_companies=len(entries),
            period_start=dates.start.isoformat(),
            period_end=dates.end.isoformat(),
            duration_ms=round(duration_ms, 2),
        )
        return GeneratedRanking(
            period=period, dates=dates, calculated_at=calculated_at, entries=entries
        )

    def generate_all_rankings(
        self,
        reference_date: datetime | None = None,
        max_workers: int = 1,
    ) -> dict[RankingPeriod, GeneratedRanking]:
        """Generate every period for the same reference date.

        Args:
            reference_date: Last day of the windows (defaults to now).
            max_workers: Periods generated in parallel (1 = sequential).

        Returns:
            Mapping of period to its generated snapshot.
        """
        reference = reference_date or self._clock()
        periods = list(RankingPeriod)

        if max_workers <= 1:
            return {p: self.generate_ranking_for_period(p, reference) for p in periods}

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                p: executor.submit(self.generate_ranking_for_period, p, reference)
                for p in periods
            }
            return {p: futures[p].result() for p in periods}

    def get_ranking_for_period(
        self,
        period: RankingPeriod | str,
        limit: int = DEFAULT_RANKING_LIMIT,
    ) -> list[CompanyRanking]:
        """Get the latest ranking of a period for active companies.

        Args:
            period: Ranking period.
            limit: Maximum rows.

        Returns:
            Rows with company name and domain, in rank order.
        """
        period = RankingPeriod.parse(period)
        latest = self._store.get_latest_ranking_calculated_at(period.value)
        if latest is None:
            return []
        return self._store.list_rankings(
            period.value, latest, active_only=True, limit=limit
        )

    def get_company_rankings(
        self, company_id: int
    ) -> dict[RankingPeriod, CompanyRanking | None]:
        """Get a company's current row for every period."""
        return {
            period: self._store.get_company_latest_ranking(company_id, period.value)
            for period in RankingPeriod
        }

    def get_ranking_statistics(self) -> dict[str, dict[str, Any]]:
        """Aggregate the latest ranking of every period.

        Returns:
            Mapping of period value to total_companies, average_score,
            max_score, min_score, total_articles, total_bookmarks and
            last_calculated.
        """
        statistics: dict[str, dict[str, Any]] = {}
        for period in RankingPeriod:
            latest = self._store.get_latest_ranking_calculated_at(period.value)
            if latest is None:
                statistics[period.value] = {
                    "total_companies": 0,
                    "average_score": 0.0,
                    "max_score": 0.0,
                    "min_score": 0.0,
                    "total_articles": 0,
                    "total_bookmarks": 0,
                    "last_calculated": None,
                }
                continue
            aggregates = self._store.get_ranking_aggregates(period.value, latest)
            statistics[period.value] = {
                "total_companies": aggregates.get("total_companies", 0),
                "average_score": round(aggregates.get("average_score") or 0.0, 2),
                "max_score": aggregates.get("max_score") or 0.0,
                "min_score": aggregates.get("min_score") or 0.0,
                "total_articles": aggregates.get("total_articles", 0),
                "total_bookmarks": aggregates.get("total_bookmarks", 0),
                "last_calculated": latest,
            }
        return statistics

    def get_top_companies_ranking_history(
        self,
        top_count: int = 10,
        history_days: int = DEFAULT_HISTORY_DAYS,
    ) -> dict[str, dict[str, list[CompanyRanking]]]:
        """Get recent top-N ranking rows grouped by company and period.

        Args:
            top_count: Highest rank position included.
            history_days: Look-back window in days.

        Returns:
            Mapping of company name to period value to rows, newest first.
        """
        until = ensure_utc(self._clock())
        since = until - timedelta(days=history_days)
        grouped: dict[str, dict[str, list[CompanyRanking]]] = defaultdict(
            lambda: defaultdict(list)
        )
        for row in self._store.list_top_rankings_between(top_count, since, until):
            grouped[row.company_name or str(row.company_id)][
                row.ranking_period
            ].append(row)
        return {name: dict(periods) for name, periods in grouped.items()}
