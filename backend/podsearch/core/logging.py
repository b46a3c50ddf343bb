"""
Structured logging for the podcast search API.

Log lines are structlog events: an event name plus key/value fields. Each
line is stamped with the service name, an ISO 8601 timestamp and, while a
request is being served, its trace_id and request_id.
"""
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import structlog
from structlog.types import Processor

SERVICE_NAME = "podsearch_api"

_trace_id: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def add_request_context(
    logger: Any,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    """structlog processor stamping service, timestamp and request IDs."""
    for key, var in (("trace_id", _trace_id), ("request_id", _request_id)):
        value = var.get()
        if value:
            event_dict[key] = value

    event_dict["service"] = SERVICE_NAME
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    service_name: Optional[str] = None,
    json_output: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        service_name: Overrides SERVICE_NAME in every entry
        json_output: JSON lines when True, human-readable console output otherwise
    """
    global SERVICE_NAME
    if service_name:
        SERVICE_NAME = service_name

    renderer: Processor = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            add_request_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger().setLevel(level)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def new_id() -> str:
    """Random UUID4 string, used for trace and request IDs."""
    return str(uuid.uuid4())


def bind_request_context(trace_id: Optional[str] = None) -> Tuple[str, str]:
    """
    Bind IDs for the request being served.

    A missing trace_id is generated. The request ID is always fresh.

    Returns:
        (trace_id, request_id)
    """
    trace_id = trace_id or new_id()
    request_id = new_id()
    _trace_id.set(trace_id)
    _request_id.set(request_id)
    return trace_id, request_id


def clear_request_context() -> None:
    _trace_id.set(None)
    _request_id.set(None)


def get_trace_id() -> Optional[str]:
    return _trace_id.get()


def get_request_id() -> Optional[str]:
    return _request_id.get()
