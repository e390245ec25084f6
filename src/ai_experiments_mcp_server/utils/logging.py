"""
Logging setup for the AI Experiments MCP Server.

structlog is routed through the standard library so aiohttp's own
records share the same stream. Context bound with
structlog.contextvars (the SSE session id, for instance) is merged into
every event logged while it is bound.
"""

import logging
import sys
from typing import Any, List

import structlog

# Never logged below WARNING
NOISY_LOGGERS = ("aiohttp.access", "aiohttp.server")


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog and the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: JSON lines when True, a colored console layout otherwise
    """
    level = getattr(logging, log_level.upper())

    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        renderers: List[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=shared_processors + renderers,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    logging.getLogger().setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
