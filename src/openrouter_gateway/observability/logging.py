"""Structured logging configuration for openrouter-gateway."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars

_CONFIGURED = False

_SECRET_KEYS = frozenset({"api_key", "authorization", "Authorization"})
_REDACTED = "***"


def redact_secrets(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """structlog processor masking credential-bearing keys."""
    for key in _SECRET_KEYS.intersection(event_dict):
        event_dict[key] = _REDACTED
    return event_dict


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
) -> None:
    """Route stdlib and structlog logging through one structlog formatter.

    Gateway modules log via ``logging.getLogger(__name__)`` with ``extra=``
    fields; those fields are lifted into the rendered event. Runs once per
    process; later calls are no-ops.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        fmt: Output format, "json" or "console".
    """
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if fmt == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.add_log_level,
            redact_secrets,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)


def get_logger(name: str) -> Any:
    """Return a structlog ``BoundLogger`` for *name*."""
    return structlog.get_logger(name)
