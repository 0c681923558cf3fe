"""Structured logging setup for the Homologaciones MCP server.

Uses structlog for machine-parseable output. Everything is written to
stderr because stdout carries the MCP stdio protocol stream.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

# Third-party loggers that are chatty at INFO (per-request lines)
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "mcp.server.lowlevel.server")


def setup_logging(log_level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines instead of the console format
    """
    level = logging.getLevelName(log_level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # The host usually captures stderr verbatim, so no ANSI colors
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a structlog logger, optionally with bound context.

    Args:
        name: Logger name (typically module name)
        **initial_context: Key-value pairs attached to every event
    """
    logger = structlog.get_logger(name)
    return logger.bind(**initial_context) if initial_context else logger


def mask_session_id(session_id: str | None) -> str:
    """Shorten a session id for log output."""
    if not session_id:
        return "<none>"
    return f"{session_id[:12]}..."
