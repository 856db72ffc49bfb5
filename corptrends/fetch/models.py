"""Data models for the scraping engine."""

from datetime import datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from corptrends.fetch.constants import HTTP_STATUS_OK_MAX, HTTP_STATUS_OK_MIN


class FetchErrorClass(str, Enum):
    """Classification of failed attempts.

    - NETWORK_TIMEOUT: Request timed out
    - CONNECTION_ERROR: Could not establish connection
    - RESPONSE_SIZE_EXCEEDED: Response exceeded max size limit
    - HTTP_4XX: Client error status (except 429)
    - HTTP_5XX: Server error status
    - RATE_LIMITED: 429 Too Many Requests
    - UNKNOWN: Unclassified transport error
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RESPONSE_SIZE_EXCEEDED = "RESPONSE_SIZE_EXCEEDED"
    HTTP_4XX = "HTTP_4XX"
    HTTP_5XX = "HTTP_5XX"
    RATE_LIMITED = "RATE_LIMITED"
    UNKNOWN = "UNKNOWN"


class FetchError(BaseModel):
    """Typed error from a single attempt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if available"
    )


class FetchResult(BaseModel):
    """Outcome of a single HTTP attempt."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int = Field(
        ge=0, le=599, description="HTTP status (0 on transport error)"
    )
    final_url: Annotated[
        str, Field(min_length=1, description="Final URL after redirects")
    ]
    headers: dict[str, str] = Field(
        default_factory=dict, description="Response headers"
    )
    body_bytes: bytes = Field(default=b"", description="Response body")
    error: FetchError | None = Field(
        default=None, description="Error details if the attempt failed"
    )

    @property
    def is_success(self) -> bool:
        """Check if the attempt was successful (2xx status, no error)."""
        return (
            self.error is None
            and HTTP_STATUS_OK_MIN <= self.status_code < HTTP_STATUS_OK_MAX
        )

    @property
    def body_size(self) -> int:
        """Get the size of the response body in bytes."""
        return len(self.body_bytes)

    @property
    def text(self) -> str:
        """Decode the body as UTF-8, replacing invalid bytes."""
        return self.body_bytes.decode("utf-8", errors="replace")


class ErrorLogEntry(BaseModel):
    """One failed attempt, as kept in the engine's in-memory error log."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    scraper: str = Field(description="Name of the engine owner, e.g. 'qiita'")
    url: str
    error: str = Field(description="Error message of the attempt")
    attempt: int = Field(ge=1, description="1-based attempt number")
    status_code: int | None = None
    error_class: FetchErrorClass = FetchErrorClass.UNKNOWN
    timestamp: datetime


class LastResponse(BaseModel):
    """Metadata of the most recent HTTP response."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""


class RequestOptions(BaseModel):
    """Per-call overrides for a single scrape."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout_seconds: float | None = Field(default=None, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)
