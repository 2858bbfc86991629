"""Feedback submission API endpoint.

Accepts a feedback form as JSON or url-encoded form data and relays it to the
configured Apprise API endpoint.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from feedback_relay.lib.exceptions import PreformedResponse, SubmissionDecodeError, error_response
from feedback_relay.lib.feedback.apprise_notifier import AppriseNotifier
from feedback_relay.lib.feedback.negotiation import ContentNegotiator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_notifier(request: Request) -> AppriseNotifier:
    return request.app.state.notifier


def get_negotiator(request: Request) -> ContentNegotiator:
    return request.app.state.negotiator


def _too_large(message: str) -> PreformedResponse:
    # The rest of the body stays unread, so the connection cannot be reused.
    response = error_response(SubmissionDecodeError(message, status_code=413))
    response.headers["Connection"] = "close"
    return PreformedResponse(response)


async def read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, giving up as soon as it grows past ``limit``.

    A ``Content-Length`` above the limit is refused before anything is read.

    Raises:
        PreformedResponse: 413 carrying ``Connection: close``
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise _too_large(f"declared body of {declared} bytes exceeds limit of {limit}")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise _too_large(f"body exceeds limit of {limit} bytes")
    return bytes(body)


@router.post(
    "/",
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Malformed submission body"},
        413: {"description": "Submission body too large"},
        422: {"description": "Required field missing or not a string"},
        500: {"description": "Notification could not be delivered"},
    },
    summary="Submit feedback",
)
async def submit_feedback(
    request: Request,
    notifier: Annotated[AppriseNotifier, Depends(get_notifier)],
    negotiator: Annotated[ContentNegotiator, Depends(get_negotiator)],
) -> Response:
    """Decode a submission and forward it as a notification.

    Returns:
        201 with an empty body once the notification endpoint accepted it

    Raises:
        PreformedResponse: 413 when the body is over the size limit
        SubmissionDecodeError: 4xx when the body cannot be decoded
        UpstreamNotificationError: 500 when the notification call fails
    """
    body = await read_limited_body(request, negotiator.max_body_bytes)
    submission = negotiator.decode(body, request.headers.get("content-type"))

    logger.debug(
        "Received feedback submission",
        extra={"source": submission.source, "has_email": submission.email is not None},
    )

    await notifier.send_feedback_notification(submission)

    return Response(status_code=status.HTTP_201_CREATED)
