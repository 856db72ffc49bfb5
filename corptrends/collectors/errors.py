"""Error types for the platform collectors."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from corptrends.fetch.errors import ScrapeError


ErrorDetail = str | int | bool | None


class CollectorErrorClass(str, Enum):
    """Why a platform run or a listing item failed.

    - FETCH: the listing page never arrived (retries exhausted, transport)
    - PARSE: the page arrived but is not a usable document
    - SCHEMA: one listing item lacks title or url
    """

    FETCH = "FETCH"
    PARSE = "PARSE"
    SCHEMA = "SCHEMA"


class CollectorError(Exception):
    """A platform collector could not turn a listing into records.

    Subclasses fix ``error_class``; the base class is used for failures
    that happen around the fetch itself.
    """

    error_class = CollectorErrorClass.FETCH

    def __init__(
        self,
        message: str,
        platform: str | None = None,
        url: str | None = None,
        details: dict[str, ErrorDetail] | None = None,
    ) -> None:
        """Initialize the collector error.

        Args:
            message: Human-readable error message.
            platform: Platform tag of the failing collector.
            url: Listing page or item the error refers to.
            details: Extra context for the run summary.
        """
        super().__init__(message)
        self.message = message
        self.platform = platform
        self.url = url
        self.details = details or {}


class ParseError(CollectorError):
    """Raised when a listing page cannot be turned into a DOM."""

    error_class = CollectorErrorClass.PARSE


class SchemaError(CollectorError):
    """Raised when a listing item is missing a required field.

    Collectors catch this per item: the item is dropped with a warning
    and the batch continues.
    """

    error_class = CollectorErrorClass.SCHEMA

    def __init__(
        self,
        message: str,
        platform: str | None = None,
        field: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(
            message,
            platform=platform,
            url=url,
            details={"field": field} if field is not None else None,
        )
        self.field = field


class ErrorRecord(BaseModel):
    """Platform failure as reported in a scrape summary."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: CollectorErrorClass
    message: Annotated[str, Field(min_length=1)]
    platform: str | None = None
    url: str | None = None
    details: dict[str, ErrorDetail] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, error: CollectorError) -> "ErrorRecord":
        """Record a collector exception as-is."""
        return cls(
            error_class=error.error_class,
            message=error.message,
            platform=error.platform,
            url=error.url,
            details=error.details,
        )

    @classmethod
    def from_scrape_error(cls, error: ScrapeError, platform: str) -> "ErrorRecord":
        """Record a listing page the engine gave up on.

        Args:
            error: Error raised after the last attempt.
            platform: Platform tag of the collector that owned the engine.

        Returns:
            FETCH record carrying the last status and the attempt count.
        """
        return cls(
            error_class=CollectorErrorClass.FETCH,
            message=error.message,
            platform=platform,
            url=error.url,
            details={"status_code": error.status_code, "attempts": error.attempts},
        )

    def describe(self) -> str:
        """One-line form used by the CLI, e.g. ``[FETCH] HTTP 503 (attempts=3)``."""
        text = f"[{self.error_class.value}] {self.message}"
        context = ", ".join(
            f"{key}={value}"
            for key, value in sorted(self.details.items())
            if value is not None
        )
        return f"{text} ({context})" if context else text
