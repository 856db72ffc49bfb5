"""Data models for the ranking services."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from corptrends.ranker.constants import (
    DEFAULT_OUTSIDE_WINDOW_WEIGHT,
    DEFAULT_PLATFORM_WEIGHTS,
    DEFAULT_TIME_DECAY_FLOOR,
    DEFAULT_UNKNOWN_PLATFORM_WEIGHT,
)
from corptrends.ranker.errors import UnknownPeriodError
from corptrends.store.models import Company


if TYPE_CHECKING:
    from corptrends.settings.app import AppSettings


class RankingPeriod(str, Enum):
    """Named ranking windows."""

    ONE_WEEK = "1w"
    ONE_MONTH = "1m"
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"
    ONE_YEAR = "1y"
    THREE_YEARS = "3y"
    ALL = "all"

    @classmethod
    def parse(cls, value: "str | RankingPeriod") -> "RankingPeriod":
        """Convert a period string.

        Raises:
            UnknownPeriodError: If the value is not a period.
        """
        if isinstance(value, RankingPeriod):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnknownPeriodError(value) from e


@dataclass(frozen=True)
class PeriodDates:
    """Inclusive boundaries of a ranking window."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class ScoreWeights:
    """Weighting constants of the influence score.

    Attributes:
        article_base: Points per article.
        bookmark_weight: Points per bookmark.
        likes_weight: Points per like.
        platform_weights: Multiplier per platform tag.
        unknown_platform_weight: Multiplier for other platforms.
        time_decay_floor: Lowest time weight inside the window.
        outside_window_weight: Time weight outside the window or undated.
    """

    article_base: float = 1.0
    bookmark_weight: float = 0.1
    likes_weight: float = 0.05
    platform_weights: dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_PLATFORM_WEIGHTS)
    )
    unknown_platform_weight: float = DEFAULT_UNKNOWN_PLATFORM_WEIGHT
    time_decay_floor: float = DEFAULT_TIME_DECAY_FLOOR
    outside_window_weight: float = DEFAULT_OUTSIDE_WINDOW_WEIGHT

    @classmethod
    def from_settings(cls, settings: "AppSettings") -> "ScoreWeights":
        """Build weights from application settings."""
        return cls(
            article_base=settings.score_article_base,
            bookmark_weight=settings.score_bookmark_weight,
            likes_weight=settings.score_likes_weight,
            platform_weights={
                "qiita": settings.score_platform_weight_qiita,
                "zenn": settings.score_platform_weight_zenn,
                "hatena": settings.score_platform_weight_hatena,
            },
            unknown_platform_weight=settings.score_platform_weight_default,
            time_decay_floor=settings.score_time_decay_floor,
            outside_window_weight=settings.score_outside_window_weight,
        )

    def platform_weight(self, platform: str | None) -> float:
        """Return the multiplier for a platform tag."""
        if platform is None:
            return self.unknown_platform_weight
        return self.platform_weights.get(platform, self.unknown_platform_weight)


@dataclass(frozen=True)
class CompanyScore:
    """A company's score for one window."""

    company: Company
    total_score: float
    article_count: int
    total_bookmarks: int


@dataclass(frozen=True)
class RankingEntry:
    """One row of a generated ranking."""

    company_id: int
    company_name: str
    rank_position: int
    total_score: float
    article_count: int
    total_bookmarks: int


@dataclass(frozen=True)
class GeneratedRanking:
    """One stored ranking snapshot of a period.

    ``calculated_at`` identifies the snapshot even when ``entries`` is empty
    and nothing was written.
    """

    period: RankingPeriod
    dates: PeriodDates
    calculated_at: datetime
    entries: list[RankingEntry]


@dataclass(frozen=True)
class RankingChange:
    """A company's rank movement between two snapshots.

    ``rank_change`` is previous minus current: positive means the company
    moved up.
    """

    company_id: int
    current_rank: int
    previous_rank: int
    rank_change: int


@dataclass(frozen=True)
class RankingChangeStatistics:
    """Aggregate movement of the latest history snapshot."""

    total: int
    rising: int
    falling: int
    unchanged: int
    average_change: float
    max_rise: int
    max_fall: int
    calculated_at: datetime

    def to_dict(self) -> dict[str, int | float | str]:
        """Convert to dictionary for display."""
        return {
            "total": self.total,
            "rising": self.rising,
            "falling": self.falling,
            "unchanged": self.unchanged,
            "average_change": self.average_change,
            "max_rise": self.max_rise,
            "max_fall": self.max_fall,
            "calculated_at": self.calculated_at.isoformat(),
        }
