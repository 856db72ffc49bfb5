"""Shared Pydantic base models."""

from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Immutable model that rejects unknown keys and trims string input.

    Used for configuration documents, where stray whitespace in YAML values
    would otherwise leak into matching rules.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)
