"""Custom exception classes for the feedback relay.

Every request-time failure is collapsed into an HTTP response by
``error_response``; configuration failures never reach it because they stop
the process before it serves traffic.
"""

import logging
from typing import Optional, Dict, Any, List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

logger = logging.getLogger(__name__)


class FeedbackRelayError(Exception):
    """Base exception for relay errors."""

    ERROR_CODE = "RELAY_001"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize exception with message, code, and optional details.

        Args:
            message: Error message
            error_code: Optional error code override
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.error_code = error_code or self.ERROR_CODE
        self.details = details or {}


class ConfigurationError(FeedbackRelayError):
    """Raised when configuration is invalid."""

    ERROR_CODE = "CONFIG_001"


class MissingStatelessTargetsError(ConfigurationError):
    """Raised when a stateless endpoint is configured without target urls."""

    ERROR_CODE = "CONFIG_002"


class SubmissionDecodeError(FeedbackRelayError):
    """Raised when a submission body cannot be decoded."""

    ERROR_CODE = "DECODE_001"

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        wrong_encoding: bool = False,
        fields: Optional[List[str]] = None,
        error_code: Optional[str] = None,
    ):
        """Initialize with the HTTP status and the offending field names.

        Args:
            message: Error message (logged, never returned to the client)
            status_code: 4xx status reported to the client
            wrong_encoding: True when the body is not this encoding at all
            fields: Names of missing or mistyped fields
        """
        super().__init__(message, error_code)
        self.status_code = status_code
        self.wrong_encoding = wrong_encoding
        self.fields = fields or []
        self.details["fields"] = self.fields


class UpstreamNotificationError(FeedbackRelayError):
    """Raised when the notification endpoint call fails."""

    ERROR_CODE = "UPSTREAM_001"


class PreformedResponse(FeedbackRelayError):
    """Short-circuit carrying an already built response.

    Raised where the reply needs more than the standard error mapping gives,
    such as the 413 that stops reading an oversized body and closes the
    connection.
    """

    ERROR_CODE = "RESPONSE_001"

    def __init__(self, response: Response):
        super().__init__(f"preformed response: {response.status_code}")
        self.response = response


_DECODE_MESSAGES = {
    400: "Malformed submission",
    413: "Submission too large",
    422: "Invalid submission",
}


def error_response(exc: Exception) -> Response:
    """Collapse any error into the response the client is allowed to see."""
    if isinstance(exc, PreformedResponse):
        return exc.response

    if isinstance(exc, SubmissionDecodeError):
        logger.info('Rejected submission (%s): %s', exc.status_code, exc)
        content: Dict[str, Any] = {
            "status": "error",
            "error": _DECODE_MESSAGES.get(exc.status_code, "Malformed submission"),
        }
        if exc.status_code == 422 and exc.fields:
            content["details"] = [{"field": field} for field in exc.fields]
        return JSONResponse(status_code=exc.status_code, content=content)

    if isinstance(exc, UpstreamNotificationError):
        logger.warning(
            'Notification failed: %s', exc, exc_info=exc,
            extra={"error_code": exc.error_code},
        )
    else:
        logger.error('Unhandled exception: %s', exc, exc_info=exc)

    return Response(status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    """Route relay errors raised by handlers through ``error_response``."""

    async def relay_error_handler(request: Request, exc: FeedbackRelayError) -> Response:
        return error_response(exc)

    app.add_exception_handler(FeedbackRelayError, relay_error_handler)
