"""Scraping engine: HTTP fetch, retries, rate limiting, and error log."""

from corptrends.fetch.client import ScrapeEngine
from corptrends.fetch.config import ScrapeConfig
from corptrends.fetch.errors import ResponseSizeExceededError, ScrapeError
from corptrends.fetch.metrics import FetchMetrics
from corptrends.fetch.models import (
    ErrorLogEntry,
    FetchError,
    FetchErrorClass,
    FetchResult,
    LastResponse,
    RequestOptions,
)
from corptrends.fetch.rate_limiter import RateLimiterProtocol, WindowRateLimiter


__all__ = [
    "ErrorLogEntry",
    "FetchError",
    "FetchErrorClass",
    "FetchMetrics",
    "FetchResult",
    "LastResponse",
    "RateLimiterProtocol",
    "RequestOptions",
    "ResponseSizeExceededError",
    "ScrapeConfig",
    "ScrapeEngine",
    "ScrapeError",
    "WindowRateLimiter",
]
