"""Shared data model primitives."""

from corptrends.data_model.base import StrictBaseModel
from corptrends.data_model.timestamps import (
    end_of_day,
    ensure_utc,
    from_db_timestamp,
    start_of_day,
    to_db_timestamp,
    utc_now,
)


__all__ = [
    "StrictBaseModel",
    "end_of_day",
    "ensure_utc",
    "from_db_timestamp",
    "start_of_day",
    "to_db_timestamp",
    "utc_now",
]
