"""Transient article records produced by the platform collectors."""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from corptrends.store.models import PlatformTag


class RawArticleRecord(BaseModel):
    """One article as read from a platform listing page.

    ``engagement_count`` is the platform's popularity metric: bookmarks on
    Hatena Bookmark, likes on Qiita and Zenn. The ``organization`` fields are
    set when the article was published under a Qiita organization or a Zenn
    publication. Records are never persisted directly; the ingestion
    normalizer maps them onto ``Article`` rows.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: Annotated[str, Field(min_length=1)]
    url: Annotated[str, Field(min_length=1)]
    platform: PlatformTag
    author: str | None = Field(default=None, description="Author handle")
    author_name: str | None = Field(default=None, description="Author display name")
    author_url: str | None = None
    organization: str | None = Field(default=None, description="Organization slug")
    organization_name: str | None = None
    organization_url: str | None = None
    domain: str | None = None
    engagement_count: int = Field(default=0, ge=0)
    published_at: datetime | None = None
    scraped_at: datetime
