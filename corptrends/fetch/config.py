"""Configuration model for the scraping engine."""

from typing import TYPE_CHECKING, Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from corptrends.fetch.constants import DEFAULT_MAX_RESPONSE_SIZE_BYTES
from corptrends.settings.app import DEFAULT_USER_AGENT


if TYPE_CHECKING:
    from corptrends.settings.app import AppSettings


_FORBIDDEN_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})


class ScrapeConfig(BaseModel):
    """Settings for one engine instance.

    ``max_retry_count`` is the total number of attempts per scrape; the
    engine sleeps ``retry_delay_seconds`` between attempts.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: Annotated[float, Field(gt=0, le=300.0)] = 30.0
    max_retry_count: Annotated[int, Field(ge=1, le=10)] = 3
    retry_delay_seconds: Annotated[float, Field(ge=0, le=300.0)] = 1.0
    requests_per_minute: Annotated[int, Field(ge=1, le=6000)] = 30
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = DEFAULT_USER_AGENT
    headers: dict[str, str] = Field(
        default_factory=dict, description="Headers added to every request"
    )
    max_response_size_bytes: Annotated[int, Field(ge=1024)] = (
        DEFAULT_MAX_RESPONSE_SIZE_BYTES
    )

    @field_validator("headers")
    @classmethod
    def validate_no_auth_headers(cls, v: dict[str, str]) -> dict[str, str]:
        """Ensure credentials are never carried in scraping config."""
        for key in v:
            if key.lower() in _FORBIDDEN_HEADERS:
                msg = f"Header '{key}' must not be set on scraping requests"
                raise ValueError(msg)
        return v

    @classmethod
    def for_platform(cls, settings: "AppSettings", platform: str) -> "ScrapeConfig":
        """Build the engine configuration for a platform from settings.

        Args:
            settings: Application settings.
            platform: Platform tag (qiita, zenn, hatena).

        Returns:
            ScrapeConfig with the platform's rate limit and timeout.
        """
        return cls(
            timeout_seconds=settings.timeout_for_platform(platform),
            max_retry_count=settings.scraping_max_retries,
            retry_delay_seconds=settings.scraping_retry_delay,
            requests_per_minute=settings.rate_limit_for_platform(platform),
            user_agent=settings.scraping_user_agent,
        )
