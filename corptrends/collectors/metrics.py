"""Metrics collection for the platform collectors."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock

from corptrends.collectors.errors import CollectorErrorClass


_metrics_instance: "CollectorMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class CollectorMetrics:
    """Thread-safe per-platform collector metrics.

    Use get_instance() for singleton access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    records_by_platform: Counter[str] = field(default_factory=Counter)
    failures_by_platform_error: Counter[tuple[str, str]] = field(
        default_factory=Counter
    )
    duration_by_platform: dict[str, float] = field(default_factory=dict)
    total_records: int = 0
    total_failures: int = 0

    @classmethod
    def get_instance(cls) -> "CollectorMetrics":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared CollectorMetrics instance.
        """
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_records(self, platform: str, count: int) -> None:
        """Record scraped records for a platform."""
        with self._lock:
            self.records_by_platform[platform] += count
            self.total_records += count

    def record_failure(self, platform: str, error_class: CollectorErrorClass) -> None:
        """Record a failed platform scrape."""
        with self._lock:
            self.failures_by_platform_error[(platform, error_class.value)] += 1
            self.total_failures += 1

    def record_duration(self, platform: str, duration_ms: float) -> None:
        """Record the scrape-and-ingest duration of a platform."""
        with self._lock:
            self.duration_by_platform[platform] = duration_ms

    def get_failures_total(self, platform: str | None = None) -> int:
        """Get total failures, optionally for one platform."""
        with self._lock:
            if platform is None:
                return self.total_failures
            return sum(
                count
                for (name, _), count in self.failures_by_platform_error.items()
                if name == platform
            )

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to a dictionary."""
        with self._lock:
            return {
                "records_by_platform": dict(self.records_by_platform),
                "failures_total": self.total_failures,
                "records_total": self.total_records,
                "duration_by_platform": dict(self.duration_by_platform),
            }
