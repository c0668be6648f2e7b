"""Structured logging for the USSD service, built on structlog.

Development gets coloured console lines, everything else gets one JSON
object per line. Entries carry the ``request_id`` bound by the HTTP
middleware and, inside a USSD turn, the ``session_id`` bound by the router.

Handset input is never logged raw: ``redact_secrets`` masks any field whose
name marks it as a PIN, a verification code or the gateway ``text``.

Usage:
    from afritokeni_ussd.logging_config import setup_logging, get_logger
    setup_logging(log_level="DEBUG", json_logs=False)
    logger = get_logger(__name__)
    logger.info("escrow.created", exchange_code="BTC-7K2QXA", amount="0.005")
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

REDACTED = "***"
SECRET_FIELDS = frozenset({"pin", "new_pin", "code", "verification_code", "text", "api_key"})

# Gateway polling and SQL echo drown out session traces
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore", "aiosqlite")


def redact_secrets(
    _logger: Any, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    for field in SECRET_FIELDS.intersection(event_dict):
        if event_dict[field]:
            event_dict[field] = REDACTED
    return event_dict


def setup_logging(log_level: str = "DEBUG", json_logs: bool = False) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Standard level name; unknown names fall back to DEBUG.
        json_logs: JSON lines when True, coloured console output otherwise.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
