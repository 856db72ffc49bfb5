"""Platform listing collectors and their runner."""

from corptrends.collectors.base import DEFAULT_MAX_ITEMS, PlatformCollector
from corptrends.collectors.errors import (
    CollectorError,
    CollectorErrorClass,
    ErrorRecord,
    ParseError,
    SchemaError,
)
from corptrends.collectors.metrics import CollectorMetrics
from corptrends.collectors.models import RawArticleRecord


__all__ = [
    "DEFAULT_MAX_ITEMS",
    "CollectorError",
    "CollectorErrorClass",
    "CollectorMetrics",
    "ErrorRecord",
    "ParseError",
    "PlatformCollector",
    "RawArticleRecord",
    "SchemaError",
]
