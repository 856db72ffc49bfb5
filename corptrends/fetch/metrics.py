"""Per-platform counters for the scraping engines."""

import threading
from dataclasses import asdict, dataclass, field
from typing import ClassVar

from corptrends.fetch.models import FetchErrorClass


@dataclass
class EngineStats:
    """Counters of one engine (one platform)."""

    requests: int = 0
    bytes_received: int = 0
    duration_ms: float = 0.0
    failed_attempts: int = 0
    retries: int = 0
    scrapes_failed: int = 0
    rate_limit_waits: int = 0
    rate_limit_wait_seconds: float = 0.0


@dataclass
class FetchMetrics:
    """Process-wide scraping counters keyed by engine name.

    Engines of different platforms record from different runner threads,
    so every update goes through one lock.
    """

    engines: dict[str, EngineStats] = field(default_factory=dict)
    status_codes: dict[int, int] = field(default_factory=dict)
    failure_classes: dict[str, int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    _instance: ClassVar["FetchMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def _stats(self, engine: str) -> EngineStats:
        return self.engines.setdefault(engine, EngineStats())

    def record_request(
        self, engine: str, status_code: int, bytes_received: int, duration_ms: float
    ) -> None:
        """Record a response that arrived, whatever its status."""
        with self._lock:
            stats = self._stats(engine)
            stats.requests += 1
            stats.bytes_received += bytes_received
            stats.duration_ms += duration_ms
            self.status_codes[status_code] = self.status_codes.get(status_code, 0) + 1

    def record_attempt_failure(self, engine: str, error_class: FetchErrorClass) -> None:
        """Record a failed attempt and its classification."""
        with self._lock:
            self._stats(engine).failed_attempts += 1
            key = error_class.value
            self.failure_classes[key] = self.failure_classes.get(key, 0) + 1

    def record_retry(self, engine: str) -> None:
        with self._lock:
            self._stats(engine).retries += 1

    def record_scrape_failure(self, engine: str) -> None:
        """Record a scrape that exhausted every attempt."""
        with self._lock:
            self._stats(engine).scrapes_failed += 1

    def record_rate_limit_wait(self, engine: str, seconds: float) -> None:
        """Record a blocking wait imposed by the rate limiter."""
        with self._lock:
            stats = self._stats(engine)
            stats.rate_limit_waits += 1
            stats.rate_limit_wait_seconds += seconds

    def get_engine_stats(self, engine: str) -> EngineStats:
        """Counters of one engine (zeros if it never recorded anything)."""
        with self._lock:
            return EngineStats(**asdict(self.engines.get(engine, EngineStats())))

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Totals, status and failure breakdowns, and per-engine counters.
        """
        with self._lock:
            engines = {name: asdict(stats) for name, stats in self.engines.items()}
            return {
                "requests_total": sum(s["requests"] for s in engines.values()),
                "status_codes": dict(self.status_codes),
                "failure_classes": dict(self.failure_classes),
                "engines": engines,
            }
