"""Rank-change history between consecutive ranking snapshots."""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import structlog

from corptrends.data_model.timestamps import ensure_utc, utc_now
from corptrends.ranker.constants import (
    DEFAULT_CHANGE_LIMIT,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_HISTORY_RETENTION_DAYS,
)
from corptrends.ranker.metrics import RankerMetrics
from corptrends.ranker.models import (
    RankingChange,
    RankingChangeStatistics,
    RankingPeriod,
)
from corptrends.store.models import CompanyRankingHistory
from corptrends.store.store import StateStore


logger = structlog.get_logger()


class RankingHistoryTracker:
    """Diffs ranking snapshots and serves rank-change history.

    ``rank_change`` is ``previous_rank - current_rank``, so a positive value
    means the company moved up. Companies absent from the previous snapshot
    get no history row.
    """

    def __init__(
        self,
        store: StateStore,
        retention_days: int = DEFAULT_HISTORY_RETENTION_DAYS,
        clock: Callable[[], datetime] = utc_now,
        run_id: str = "",
    ) -> None:
        """Initialize the tracker.

        Args:
            store: State store.
            retention_days: History rows older than this are purgeable.
            clock: Returns "now" for look-back windows and cleanup.
            run_id: Run identifier for logging.
        """
        self._store = store
        self._retention_days = retention_days
        self._clock = clock
        self._metrics = RankerMetrics.get_instance()
        self._log = logger.bind(component="history", run_id=run_id)

    @property
    def retention_days(self) -> int:
        """Get the retention window in days."""
        return self._retention_days

    def record_ranking_history(
        self,
        period: RankingPeriod | str,
        calculated_at: datetime,
    ) -> list[RankingChange]:
        """Record rank changes of the snapshot at ``calculated_at``.

        The previous snapshot is the newest one of the same period strictly
        older than ``calculated_at``.

        Args:
            period: Ranking period.
            calculated_at: Timestamp of the current snapshot.

        Returns:
            The recorded changes (empty when there is no previous snapshot).
        """
        period = RankingPeriod.parse(period)
        calculated_at = ensure_utc(calculated_at)
        log = self._log.bind(period=period.value)

        current = self._store.list_rankings(period.value, calculated_at)
        previous_at = self._store.get_previous_ranking_calculated_at(
            period.value, calculated_at
        )
        if not current or previous_at is None:
            log.info(
                "history_skipped",
                reason="no_current" if not current else "no_previous",
            )
            return []

        previous_ranks = {
            row.company_id: row.rank_position
            for row in self._store.list_rankings(period.value, previous_at)
        }
        changes = [
            RankingChange(
                company_id=row.company_id,
                current_rank=row.rank_position,
                previous_rank=previous_ranks[row.company_id],
                rank_change=previous_ranks[row.company_id] - row.rank_position,
            )
            for row in current
            if row.company_id in previous_ranks
        ]

        self._store.save_ranking_history(
            [
                CompanyRankingHistory(
                    company_id=change.company_id,
                    period_type=period.value,
                    current_rank=change.current_rank,
                    previous_rank=change.previous_rank,
                    rank_change=change.rank_change,
                    calculated_at=calculated_at,
                )
                for change in changes
            ]
        )
        self._metrics.record_history_rows(len(changes))
        log.info(
            "history_recorded",
            changes=len(changes),
            skipped_new=len(current) - len(changes),
            previous_calculated_at=previous_at.isoformat(),
        )
        return changes

    def get_company_ranking_history(
        self,
        company_id: int,
        period: RankingPeriod | str,
        days: int = DEFAULT_HISTORY_DAYS,
    ) -> list[CompanyRankingHistory]:
        """Get a company's history of the last ``days`` days, newest first."""
        period = RankingPeriod.parse(period)
        since = ensure_utc(self._clock()) - timedelta(days=days)
        return self._store.list_company_history(company_id, period.value, since)

    def get_top_ranking_risers(
        self,
        period: RankingPeriod | str,
        limit: int = DEFAULT_CHANGE_LIMIT,
    ) -> list[CompanyRankingHistory]:
        """Get the biggest climbers of the newest history snapshot."""
        rows = self._latest_snapshot(period)
        rising = [row for row in rows if row.rank_change > 0]
        rising.sort(key=lambda r: (-r.rank_change, r.current_rank))
        return rising[:limit]

    def get_top_ranking_fallers(
        self,
        period: RankingPeriod | str,
        limit: int = DEFAULT_CHANGE_LIMIT,
    ) -> list[CompanyRankingHistory]:
        """Get the biggest drops of the newest history snapshot."""
        rows = self._latest_snapshot(period)
        falling = [row for row in rows if row.rank_change < 0]
        falling.sort(key=lambda r: (r.rank_change, r.current_rank))
        return falling[:limit]

    def get_ranking_change_statistics(
        self, period: RankingPeriod | str
    ) -> RankingChangeStatistics | None:
        """Aggregate the newest history snapshot of a period.

        Returns:
            Statistics, or None if the period has no history yet.
        """
        period = RankingPeriod.parse(period)
        latest = self._store.get_latest_history_calculated_at(period.value)
        if latest is None:
            return None
        rows = self._store.list_history_snapshot(
            period.value, latest, active_only=False
        )
        if not rows:
            return None

        changes = [row.rank_change for row in rows]
        return RankingChangeStatistics(
            total=len(changes),
            rising=sum(1 for c in changes if c > 0),
            falling=sum(1 for c in changes if c < 0),
            unchanged=sum(1 for c in changes if c == 0),
            average_change=round(sum(changes) / len(changes), 2),
            max_rise=max(max(changes), 0),
            max_fall=min(min(changes), 0),
            calculated_at=latest,
        )

    def cleanup_old_history(self) -> int:
        """Delete history rows older than the retention window.

        Returns:
            Number of rows deleted.
        """
        cutoff = ensure_utc(self._clock()) - timedelta(days=self._retention_days)
        deleted = self._store.delete_history_before(cutoff)
        self._log.info(
            "history_cleanup_complete",
            deleted=deleted,
            cutoff=cutoff.isoformat(),
            retention_days=self._retention_days,
        )
        return deleted

    def get_history_storage_stats(self) -> dict[str, Any]:
        """Summarize stored history (counts and oldest/newest timestamps)."""
        return self._store.get_history_storage_stats()

    def _latest_snapshot(
        self, period: RankingPeriod | str
    ) -> list[CompanyRankingHistory]:
        period = RankingPeriod.parse(period)
        latest = self._store.get_latest_history_calculated_at(period.value)
        if latest is None:
            return []
        return self._store.list_history_snapshot(period.value, latest)
