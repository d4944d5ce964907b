"""Structured logging setup for the admissions core."""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # Resolved per logger so redirected stderr (CLI runners, pytest capture) is honoured.
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: str = "INFO", *, json_output: bool = True, stream: TextIO | None = None) -> None:
    """Configure structlog; events go to stderr so command output stays parseable."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format="%(message)s")

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    if json_output:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=stream) if stream else _stderr_logger,
        cache_logger_on_first_use=False,
    )


__all__ = ["configure_logging"]
