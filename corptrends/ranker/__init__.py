"""Influence scoring, ranking generation and rank-change history."""

from corptrends.ranker.errors import UnknownPeriodError
from corptrends.ranker.history import RankingHistoryTracker
from corptrends.ranker.metrics import RankerMetrics
from corptrends.ranker.models import (
    CompanyScore,
    GeneratedRanking,
    PeriodDates,
    RankingChange,
    RankingChangeStatistics,
    RankingEntry,
    RankingPeriod,
    ScoreWeights,
)
from corptrends.ranker.ranker import RankingGenerator, assign_dense_ranks
from corptrends.ranker.scorer import InfluenceScoreCalculator


__all__ = [
    # Errors
    "UnknownPeriodError",
    # Metrics
    "RankerMetrics",
    # Models
    "CompanyScore",
    "GeneratedRanking",
    "PeriodDates",
    "RankingChange",
    "RankingChangeStatistics",
    "RankingEntry",
    "RankingPeriod",
    "ScoreWeights",
    # Services
    "InfluenceScoreCalculator",
    "RankingGenerator",
    "RankingHistoryTracker",
    "assign_dense_ranks",
]
