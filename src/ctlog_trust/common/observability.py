"""Logging setup shared by the ctlog-trust commands."""

from __future__ import annotations

import logging
from typing import Any, MutableMapping

import structlog
from structlog.contextvars import bind_contextvars


_logging_configured = False

REDACTED_FIELDS = frozenset({"password", "key_password", "private_key", "private"})


def _log_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        numeric = logging.getLevelName(level.strip().upper())
        if isinstance(numeric, int):
            return numeric
    return logging.INFO


def redact_secrets(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Mask key material and passwords that end up in an event by accident."""

    for field in REDACTED_FIELDS.intersection(event_dict):
        event_dict[field] = "<redacted>"
    return event_dict


def configure_logging(service_name: str, level: str | int | None = None) -> None:
    """Route structlog through stdlib logging and render one JSON object per event."""

    global _logging_configured
    numeric_level = _log_level(level)
    if _logging_configured:
        logging.getLogger().setLevel(numeric_level)
    else:
        logging.basicConfig(level=numeric_level, format="%(message)s")
        _logging_configured = True

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            redact_secrets,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.dict_tracebacks,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    bind_contextvars(service=service_name)
