"""Company catalog loading and validation module."""

from corptrends.config.error_hints import format_validation_error, get_error_hint
from corptrends.config.loader import CompanyCatalogLoader, ConfigValidationError
from corptrends.config.schemas import CompanyCatalog, CompanyConfig


__all__ = [
    "CompanyCatalog",
    "CompanyCatalogLoader",
    "CompanyConfig",
    "ConfigValidationError",
    "format_validation_error",
    "get_error_hint",
]
