"""Shared structlog/stdlib logging bootstrap for the API and the ARQ worker."""

import logging
import logging.config
import sys

import structlog
from structlog.dev import ConsoleRenderer

_CONFIGURED = False

_SHARED_PROCESSORS: list = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
]


_LOCAL_ENVIRONMENTS = frozenset({"", "local", "development", "dev"})


def configure_logging(log_level: str, environment: str = "local") -> None:
    """Configure structured logging with environment-appropriate format.

    - Local/development: human-readable console output with colors
    - Everywhere else: JSON output for log aggregation
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    # Feed titles routinely carry non-ASCII text.
    if hasattr(sys.stdout, "reconfigure"):
        sys.stdout.reconfigure(encoding="utf-8", errors="backslashreplace")
    if hasattr(sys.stderr, "reconfigure"):
        sys.stderr.reconfigure(encoding="utf-8", errors="backslashreplace")

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if environment.lower() in _LOCAL_ENVIRONMENTS:
        renderer = ConsoleRenderer(colors=True, pad_event=40)
    else:
        renderer = structlog.processors.JSONRenderer()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                    "foreign_pre_chain": _SHARED_PROCESSORS,
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "structured",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {
                "handlers": ["default"],
                "level": log_level,
            },
            # httpx logs every request at INFO; redirect resolution makes a lot of them
            "loggers": {
                "uvicorn.access": {"level": "INFO"},
                "uvicorn.error": {"level": "INFO"},
                "asyncpg": {"level": "WARNING"},
                "httpx": {"level": "WARNING"},
                "httpcore": {"level": "WARNING"},
                "trafilatura": {"level": "WARNING"},
            },
        }
    )

    _CONFIGURED = True
