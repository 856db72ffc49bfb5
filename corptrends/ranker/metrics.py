"""Metrics collection for the ranking services."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class RankerMetrics:
    """Metrics for score and ranking operations.

    Attributes:
        scores_saved: Influence-score snapshots appended.
        rankings_generated: Period rankings generated.
        ranked_companies_by_period: Companies in the last ranking per period.
        history_rows_recorded: History rows written.
        generation_duration_ms: Duration of the last generation per period.
    """

    scores_saved: int = 0
    rankings_generated: int = 0
    ranked_companies_by_period: dict[str, int] = field(default_factory=dict)
    history_rows_recorded: int = 0
    generation_duration_ms: dict[str, float] = field(default_factory=dict)

    _instance: ClassVar["RankerMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RankerMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_score_saved(self) -> None:
        """Record an appended score snapshot."""
        self.scores_saved += 1

    def record_ranking(self, period: str, companies: int, duration_ms: float) -> None:
        """Record a generated ranking.

        Args:
            period: Period value.
            companies: Number of ranked companies.
            duration_ms: Generation duration in milliseconds.
        """
        self.rankings_generated += 1
        self.ranked_companies_by_period[period] = companies
        self.generation_duration_ms[period] = duration_ms

    def record_history_rows(self, count: int) -> None:
        """Record written history rows."""
        self.history_rows_recorded += count

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary."""
        return {
            "scores_saved": self.scores_saved,
            "rankings_generated": self.rankings_generated,
            "ranked_companies_by_period": dict(self.ranked_companies_by_period),
            "history_rows_recorded": self.history_rows_recorded,
            "generation_duration_ms": dict(self.generation_duration_ms),
        }
