"""Ingestion of scraped records into the state store."""

from corptrends.ingest.normalizer import (
    ArticleNormalizer,
    NormalizeResult,
    engagement_fields,
)


__all__ = ["ArticleNormalizer", "NormalizeResult", "engagement_fields"]
