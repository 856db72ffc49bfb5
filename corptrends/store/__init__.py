"""SQLite state store for companies, articles and ranking data.

This module provides persistent storage for:
- Companies with their matching rules
- Articles with idempotent upserts by URL and update detection
- Appended influence-score snapshots
- Per-period rankings swapped atomically, and their change history
"""

from corptrends.store.errors import (
    ArticleWriteError,
    CompanyNotFoundError,
    ConnectionError,
    MigrationError,
    StateStoreError,
)
from corptrends.store.metrics import StoreMetrics, TransactionContext
from corptrends.store.models import (
    Article,
    ArticleEventType,
    Company,
    CompanyInfluenceScore,
    CompanyRanking,
    CompanyRankingHistory,
    PlatformTag,
    UpsertResult,
)
from corptrends.store.store import StateStore


__all__ = [
    # Errors
    "ArticleWriteError",
    "CompanyNotFoundError",
    "ConnectionError",
    "MigrationError",
    "StateStoreError",
    # Metrics
    "StoreMetrics",
    "TransactionContext",
    # Models
    "Article",
    "ArticleEventType",
    "Company",
    "CompanyInfluenceScore",
    "CompanyRanking",
    "CompanyRankingHistory",
    "PlatformTag",
    "UpsertResult",
    # Store
    "StateStore",
]
