"""Metrics collection for the state store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for state store operations.

    Attributes:
        articles_new_total: Articles inserted for the first time.
        articles_updated_total: Existing articles whose tracked fields changed.
        articles_unchanged_total: Existing articles re-seen without changes.
        rankings_replaced_total: Ranking rows written by atomic replaces.
        history_purged_total: History rows removed by retention cleanup.
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
        db_tx_failed: Number of rolled back transactions.
    """

    articles_new_total: int = 0
    articles_updated_total: int = 0
    articles_unchanged_total: int = 0
    rankings_replaced_total: int = 0
    history_purged_total: int = 0
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    db_tx_failed: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_new_article(self) -> None:
        """Record a newly inserted article."""
        self.articles_new_total += 1

    def record_updated_article(self) -> None:
        """Record an updated article."""
        self.articles_updated_total += 1

    def record_unchanged_article(self) -> None:
        """Record an unchanged article."""
        self.articles_unchanged_total += 1

    def record_rankings_replaced(self, count: int) -> None:
        """Record ranking rows written by a replace."""
        self.rankings_replaced_total += count

    def record_history_purged(self, count: int) -> None:
        """Record history rows deleted by retention."""
        self.history_purged_total += count

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record a committed transaction's duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def record_tx_failure(self) -> None:
        """Record a rolled back transaction."""
        self.db_tx_failed += 1

    @property
    def avg_tx_duration_ms(self) -> float:
        """Average committed transaction duration in milliseconds."""
        if self.db_tx_count == 0:
            return 0.0
        return self.db_tx_duration_ms / self.db_tx_count

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "articles_new_total": self.articles_new_total,
            "articles_updated_total": self.articles_updated_total,
            "articles_unchanged_total": self.articles_unchanged_total,
            "rankings_replaced_total": self.rankings_replaced_total,
            "history_purged_total": self.history_purged_total,
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "db_tx_failed": self.db_tx_failed,
            "avg_tx_duration_ms": round(self.avg_tx_duration_ms, 2),
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Unique transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
        affected_rows: Rows touched inside the transaction.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count.

        Args:
            rows: Number of rows affected.
        """
        self.affected_rows += max(rows, 0)
