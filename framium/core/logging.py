"""
Structured logging setup.

structlog renders every event, including stdlib records from uvicorn, httpx
and the provider SDKs, as one JSON object per line (or colored console lines
in development). Each event carries the Framium version, and provider keys
that end up in event context are masked.
"""

import logging
import logging.config
import sys
from typing import IO, Optional

import structlog

from framium import __version__

QUIET_LOGGERS = ("uvicorn.access", "httpx", "openai", "anthropic")
SECRET_KEYS = frozenset({"api_key", "authorization", "x-goog-api-key"})


def add_version(logger, method, event_dict):
    event_dict.setdefault("version", __version__)
    return event_dict


def mask_secrets(logger, method, event_dict):
    """Replace provider credentials with a short prefix."""
    for key in SECRET_KEYS.intersection(event_dict):
        value = str(event_dict[key] or "")
        event_dict[key] = f"{value[:4]}..." if value else value
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    stream: Optional[IO[str]] = None,
) -> None:
    """Install structlog and route stdlib logging through it.

    Call once at process start, before the first event is logged: loggers
    are cached on first use.

    Args:
        log_level: Root level, as in FramiumConfig.log_level
        json_logs: JSON lines when True, ConsoleRenderer when False
        stream: Output stream, defaults to stdout
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_version,
        mask_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        render_chain = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        render_chain = [structlog.dev.ConsoleRenderer()]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "framium": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processors": [structlog.stdlib.ProcessorFormatter.remove_processors_meta] + render_chain,
                "foreign_pre_chain": shared_processors,
            },
        },
        "handlers": {
            "framium": {
                "class": "logging.StreamHandler",
                "formatter": "framium",
                "stream": stream or sys.stdout,
            },
        },
        "root": {"handlers": ["framium"], "level": log_level},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    })

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
