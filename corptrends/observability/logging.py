"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


# Third-party loggers that emit one line per HTTP request at INFO
_NOISY_LIBRARY_LOGGERS = ("httpx", "httpcore")


def resolve_log_level(verbose: bool) -> int:
    """Map the CLI verbosity flag to a logging level."""
    return logging.DEBUG if verbose else logging.INFO


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structlog for scraper and ranking runs.

    Every event carries the log level, an ISO timestamp and whatever run
    context was bound through ``bind_run_context``. JSON output is meant for
    scheduled batch jobs; console output for interactive use.

    Args:
        level: Minimum level to emit.
        output: Stream that receives rendered events.
        json_format: Render JSON lines instead of the coloured console format.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=output, level=level)
    for name in _NOISY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def bind_run_context(run_id: str, **context: str) -> None:
    """Bind run context to all subsequent log events.

    Args:
        run_id: Unique run identifier.
        **context: Extra keys such as the CLI command name.
    """
    structlog.contextvars.bind_contextvars(run_id=run_id, **context)


def clear_run_context() -> None:
    """Drop every context variable bound for the current run."""
    structlog.contextvars.clear_contextvars()
