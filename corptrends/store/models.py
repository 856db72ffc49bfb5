"""Data models for the SQLite state store."""

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class PlatformTag(str, Enum):
    """Publishing platforms articles are scraped from."""

    QIITA = "qiita"
    ZENN = "zenn"
    HATENA = "hatena"


class ArticleEventType(str, Enum):
    """Event type for article upsert operations.

    - NEW: Article was newly created
    - UPDATED: Article existed and a tracked field changed
    - UNCHANGED: Article existed with identical tracked fields
    """

    NEW = "NEW"
    UPDATED = "UPDATED"
    UNCHANGED = "UNCHANGED"


class Company(BaseModel):
    """Known company that articles can be attributed to.

    Matching rules (patterns, keywords, usernames) live on the company row;
    only active companies take part in matching, scoring and ranking.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = Field(default=None, description="Row id (None before insert)")
    name: Annotated[str, Field(min_length=1)]
    domain: Annotated[str, Field(min_length=1, description="Unique primary domain")]
    description: str | None = None
    domain_patterns: list[str] = Field(default_factory=list)
    url_patterns: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    qiita_username: str | None = None
    zenn_username: str | None = None
    zenn_organizations: list[str] = Field(default_factory=list)
    is_active: bool = True


class Article(BaseModel):
    """Scraped article, identified by its URL.

    ``bookmark_count`` is filled for Hatena Bookmark entries and
    ``likes_count`` for Qiita/Zenn; the other counter stays None.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    url: Annotated[str, Field(min_length=1, description="Unique article URL")]
    title: Annotated[str, Field(min_length=1)]
    domain: str | None = None
    platform: str = Field(description="Platform tag")
    platform_id: int | None = None
    company_id: int | None = None
    author: str | None = None
    author_name: str | None = None
    author_url: str | None = None
    organization: str | None = Field(default=None, description="Organization slug")
    organization_name: str | None = None
    organization_url: str | None = None
    published_at: datetime | None = None
    bookmark_count: int | None = Field(default=None, ge=0)
    likes_count: int | None = Field(default=None, ge=0)
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        """Check if the article is soft-deleted."""
        return self.deleted_at is not None


class UpsertResult(BaseModel):
    """Result of an article upsert operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    event_type: ArticleEventType = Field(description="What happened during upsert")
    article: Article = Field(description="The stored article")


class CompanyInfluenceScore(BaseModel):
    """One appended influence-score snapshot."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    company_id: int
    period_type: str
    period_start: datetime
    period_end: datetime
    total_score: float
    article_count: int = Field(ge=0)
    total_bookmarks: int = Field(ge=0)
    calculated_at: datetime


class CompanyRanking(BaseModel):
    """One company's position in a period ranking.

    ``company_name`` and ``company_domain`` are only populated by queries
    that join the companies table.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    company_id: int
    ranking_period: str
    rank_position: int = Field(ge=1)
    total_score: float
    article_count: int = Field(ge=0)
    total_bookmarks: int = Field(ge=0)
    period_start: datetime
    period_end: datetime
    calculated_at: datetime
    company_name: str | None = None
    company_domain: str | None = None


class CompanyRankingHistory(BaseModel):
    """Rank change of a company between two ranking snapshots."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int | None = None
    company_id: int
    period_type: str
    current_rank: int = Field(ge=1)
    previous_rank: int | None = Field(default=None, ge=1)
    rank_change: int
    calculated_at: datetime
    company_name: str | None = None
    company_domain: str | None = None
