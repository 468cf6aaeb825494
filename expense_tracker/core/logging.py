"""
Structured logging with structlog.

Every entry carries the request id of the request being served and has
secret-looking fields redacted before rendering.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

from expense_tracker.core.config import LOG_JSON, LOG_LEVEL

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_REDACTED_KEYS = ("password", "secret", "token", "authorization")


def get_request_id() -> Optional[str]:
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set (or generate) the request id for the current context."""
    rid = request_id or uuid.uuid4().hex[:16]
    request_id_var.set(rid)
    return rid


def _add_request_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    rid = get_request_id()
    if rid:
        event_dict["request_id"] = rid
    return event_dict


def _redact_secrets(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for key in list(event_dict.keys()):
        if any(marker in key.lower() for marker in _REDACTED_KEYS):
            event_dict[key] = "***"
    return event_dict


def configure_logging(log_level: str = LOG_LEVEL, json_output: bool = LOG_JSON) -> None:
    """Configure structlog processors and output format."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_request_id,
        _redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]

    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: str):
    return structlog.get_logger(name)
