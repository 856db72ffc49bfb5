"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_USER_AGENT = "DevCorpTrends/1.0"


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Platform-specific scraping values fall back to the shared ``SCRAPING_*``
    defaults when they are not set.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    db_path: Path = Field(
        default=Path("data/corptrends.sqlite"), validation_alias="CORPTRENDS_DB_PATH"
    )

    # Shared scraping defaults
    scraping_timeout: float = Field(
        default=30.0, gt=0, validation_alias="SCRAPING_TIMEOUT"
    )
    scraping_rate_limit: int = Field(
        default=30, ge=1, validation_alias="SCRAPING_RATE_LIMIT"
    )
    scraping_max_retries: int = Field(
        default=3, ge=1, le=10, validation_alias="SCRAPING_MAX_RETRIES"
    )
    scraping_retry_delay: float = Field(
        default=1.0, ge=0, validation_alias="SCRAPING_RETRY_DELAY"
    )
    scraping_user_agent: str = Field(
        default=DEFAULT_USER_AGENT, min_length=1, validation_alias="SCRAPING_USER_AGENT"
    )
    scraping_max_items: int = Field(
        default=16, ge=1, validation_alias="SCRAPING_MAX_ITEMS"
    )

    # Per-platform overrides
    qiita_rate_limit: int = Field(
        default=60, ge=1, validation_alias="QIITA_SCRAPING_RATE_LIMIT"
    )
    qiita_timeout: float | None = Field(
        default=None, gt=0, validation_alias="QIITA_SCRAPING_TIMEOUT"
    )
    zenn_rate_limit: int = Field(
        default=30, ge=1, validation_alias="ZENN_SCRAPING_RATE_LIMIT"
    )
    zenn_timeout: float | None = Field(
        default=None, gt=0, validation_alias="ZENN_SCRAPING_TIMEOUT"
    )
    hatena_rate_limit: int = Field(
        default=20, ge=1, validation_alias="HATENA_SCRAPING_RATE_LIMIT"
    )
    hatena_timeout: float | None = Field(
        default=None, gt=0, validation_alias="HATENA_SCRAPING_TIMEOUT"
    )
    hatena_excluded_domains: Annotated[list[str], NoDecode] = Field(
        default_factory=list, validation_alias="HATENA_EXCLUDED_DOMAINS"
    )

    # Ranking periods
    ranking_days_1w: int = Field(
        default=7, ge=1, validation_alias="RANKING_PERIOD_DAYS_1W"
    )
    ranking_days_1m: int = Field(
        default=30, ge=1, validation_alias="RANKING_PERIOD_DAYS_1M"
    )
    ranking_days_3m: int = Field(
        default=90, ge=1, validation_alias="RANKING_PERIOD_DAYS_3M"
    )
    ranking_days_6m: int = Field(
        default=180, ge=1, validation_alias="RANKING_PERIOD_DAYS_6M"
    )
    ranking_days_1y: int = Field(
        default=365, ge=1, validation_alias="RANKING_PERIOD_DAYS_1Y"
    )
    ranking_days_3y: int = Field(
        default=1095, ge=1, validation_alias="RANKING_PERIOD_DAYS_3Y"
    )
    ranking_epoch_year: int = Field(
        default=2020, ge=1970, validation_alias="RANKING_ALL_TIME_EPOCH_YEAR"
    )
    history_retention_days: int = Field(
        default=365, ge=1, validation_alias="RANKING_HISTORY_RETENTION_DAYS"
    )

    # Score weights
    score_article_base: float = Field(
        default=1.0, ge=0, validation_alias="SCORE_ARTICLE_BASE"
    )
    score_bookmark_weight: float = Field(
        default=0.1, ge=0, validation_alias="SCORE_BOOKMARK_WEIGHT"
    )
    score_likes_weight: float = Field(
        default=0.05, ge=0, validation_alias="SCORE_LIKES_WEIGHT"
    )
    score_platform_weight_qiita: float = Field(
        default=1.0, ge=0, validation_alias="SCORE_PLATFORM_WEIGHT_QIITA"
    )
    score_platform_weight_zenn: float = Field(
        default=1.0, ge=0, validation_alias="SCORE_PLATFORM_WEIGHT_ZENN"
    )
    score_platform_weight_hatena: float = Field(
        default=0.8, ge=0, validation_alias="SCORE_PLATFORM_WEIGHT_HATENA"
    )
    score_platform_weight_default: float = Field(
        default=0.5, ge=0, validation_alias="SCORE_PLATFORM_WEIGHT_DEFAULT"
    )
    score_time_decay_floor: float = Field(
        default=0.1, ge=0, le=1, validation_alias="SCORE_TIME_DECAY_FLOOR"
    )
    score_outside_window_weight: float = Field(
        default=0.5, ge=0, validation_alias="SCORE_OUTSIDE_WINDOW_WEIGHT"
    )

    @field_validator("hatena_excluded_domains", mode="before")
    @classmethod
    def split_domain_list(cls, v: object) -> object:
        """Accept a comma separated string from the environment."""
        if isinstance(v, str):
            return [part.strip().lower() for part in v.split(",") if part.strip()]
        return v

    def rate_limit_for_platform(self, platform: str) -> int:
        """Return requests-per-minute for a platform tag."""
        limits = {
            "qiita": self.qiita_rate_limit,
            "zenn": self.zenn_rate_limit,
            "hatena": self.hatena_rate_limit,
        }
        return limits.get(platform, self.scraping_rate_limit)

    def timeout_for_platform(self, platform: str) -> float:
        """Return the request timeout for a platform tag."""
        timeouts = {
            "qiita": self.qiita_timeout,
            "zenn": self.zenn_timeout,
            "hatena": self.hatena_timeout,
        }
        return timeouts.get(platform) or self.scraping_timeout

    def period_days(self) -> dict[str, int | None]:
        """Return day counts keyed by ranking period value."""
        return {
            "1w": self.ranking_days_1w,
            "1m": self.ranking_days_1m,
            "3m": self.ranking_days_3m,
            "6m": self.ranking_days_6m,
            "1y": self.ranking_days_1y,
            "3y": self.ranking_days_3y,
            "all": None,
        }


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
