"""Observability module for structured logging."""

from corptrends.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
    resolve_log_level,
)


__all__ = [
    "bind_run_context",
    "clear_run_context",
    "configure_logging",
    "resolve_log_level",
]
