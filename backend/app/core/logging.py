"""
structlog setup for the triage service.

Log entries are JSON objects (console lines in development) carrying:
- timestamp, level, logger
- service
- request_id: correlation id shared by the router pass, the answer pass
  and the HTTP access logs of one request
- any fields bound with `bind_triage_context` (provider, mode)
"""
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import Processor

SERVICE_NAME = "homeprohub_triage"

_request_id: ContextVar[Optional[str]] = ContextVar("triage_request_id", default=None)


def add_request_context(
    logger: Any,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    """Stamp the correlation id, service and a UTC timestamp onto an entry."""
    request_id = _request_id.get()
    if request_id is not None:
        # a request_id passed explicitly by the caller is kept
        event_dict.setdefault("request_id", request_id)

    event_dict["service"] = SERVICE_NAME
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _renderer(json_output: bool) -> Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    log_level: str = "INFO",
    service_name: Optional[str] = None,
    json_output: bool = True,
) -> None:
    """
    Configure structlog on top of the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        service_name: overrides SERVICE_NAME in every entry
        json_output: JSON lines for containers, console rendering otherwise
    """
    global SERVICE_NAME
    if service_name:
        SERVICE_NAME = service_name

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(json_output),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    # httpx logs every provider request at INFO; the llm.* events cover it
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_id(request_id: Optional[str]) -> None:
    """Set (or with None, clear) the correlation id of the running request."""
    _request_id.set(request_id)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def generate_request_id() -> str:
    return str(uuid.uuid4())


def bind_triage_context(**fields: Any) -> None:
    """Attach fields (provider, mode) to every entry logged for this request."""
    structlog.contextvars.bind_contextvars(**fields)


def clear_triage_context() -> None:
    structlog.contextvars.clear_contextvars()
