"""Centralized logging configuration for the feedback relay.

Provides structured JSON logging output for log shippers, while remaining
human-readable in local development.

Usage:
    # In main.py (once, at startup):
    from feedback_relay.lib.logging_config import configure_logging
    configure_logging()

    # In any module:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Something happened", extra={"status_code": 201})

The request id is set per HTTP request by the request context middleware and
injected into every log record via a logging Filter that reads from a
contextvar.
"""

import json
import logging
import os
import sys
import time
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ulid import ULID

REQUEST_ID_HEADER = "x-request-id"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

logger = logging.getLogger(__name__)


class ContextFilter(logging.Filter):
    """Inject request-scoped context into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id") or record.request_id is None:  # type: ignore[union-attr]
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    _SKIP_FIELDS = {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
        "request_id",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        for key, value in record.__dict__.items():
            if key in self._SKIP_FIELDS or key in log_entry:
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        return json.dumps(log_entry, default=str)


class SimpleFormatter(logging.Formatter):
    """Human-readable format for local development."""

    def format(self, record: logging.LogRecord) -> str:
        request_id = getattr(record, "request_id", None)
        ctx_suffix = f" [request_id={request_id}]" if request_id else ""

        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} {record.levelname:<8} {record.name} - {record.getMessage()}{ctx_suffix}"

        if record.exc_info and record.exc_info[1] is not None:
            base += "\n" + "".join(traceback.format_exception(*record.exc_info))

        return base


def configure_logging() -> None:
    """Configure root logging for the application."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    log_format = os.getenv("LOG_FORMAT", "").lower()
    if not log_format:
        log_format = "json"

    handler = logging.StreamHandler(sys.stdout)
    if log_format == "simple":
        handler.setFormatter(SimpleFormatter())
    else:
        handler.setFormatter(JsonFormatter())
    handler.addFilter(ContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def make_request_id() -> Optional[str]:
    """Generate a sortable request id, or None if it is not header-safe."""
    value = str(ULID())
    if not (value.isascii() and value.isalnum()):
        logger.debug("Discarding request id that is not header-safe: %r", value)
        return None
    return value


def create_request_context_middleware(app) -> None:
    """Register request correlation middleware on a FastAPI app.

    Each request gets a fresh id, visible to log records and handlers while
    the request runs and echoed back in the ``x-request-id`` response header.
    Exceptions escaping the application are logged once here and answered
    with a bare 500.
    """
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.requests import Request
    from starlette.responses import Response

    from feedback_relay.lib.exceptions import error_response

    class RequestContextMiddleware(BaseHTTPMiddleware):
        async def dispatch(self, request: Request, call_next) -> Response:
            req_id = make_request_id()
            token = request_id_var.set(req_id)
            request.state.request_id = req_id

            start = time.perf_counter()
            logger.debug(
                "started processing request",
                extra={"method": request.method, "path": request.url.path},
            )
            try:
                try:
                    response = await call_next(request)
                except Exception as exc:
                    response = error_response(exc)

                latency_us = int((time.perf_counter() - start) * 1_000_000)
                logger.debug(
                    "finished processing request",
                    extra={"status_code": response.status_code, "latency": f"{latency_us} us"},
                )
            finally:
                request_id_var.reset(token)

            if req_id is not None:
                response.headers[REQUEST_ID_HEADER] = req_id
            return response

    app.add_middleware(RequestContextMiddleware)
