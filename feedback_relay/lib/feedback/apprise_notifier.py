"""Apprise API notification service for feedback submissions.

See https://github.com/caronc/apprise-api. A stateful endpoint
(``/notify/<key>``) already knows its targets; a stateless endpoint
(``/notify``) needs them in every request as ``urls``.
"""
import logging

import httpx

from feedback_relay.config import NotificationConfig
from feedback_relay.lib.exceptions import UpstreamNotificationError
from feedback_relay.schemas.feedback import NotificationPayload, SubmissionRecord

logger = logging.getLogger(__name__)

TITLE_PREFIX = "[Feedback] "
ANONYMOUS_EMAIL = "anonymous"


class AppriseNotifier:
    """Forward feedback submissions to an Apprise API endpoint."""

    def __init__(self, config: NotificationConfig, client: httpx.AsyncClient):
        """Initialize Apprise notifier.

        Args:
            config: Validated notification configuration
            client: Shared HTTP client (connection pool owned by the app)
        """
        self.config = config
        self.client = client

    def build_payload(self, submission: SubmissionRecord) -> NotificationPayload:
        """Build the notification title/body, plus target urls in stateless mode."""
        email = submission.email if submission.email is not None else ANONYMOUS_EMAIL
        body = f"Source: {submission.source}\nEmail: {email}\n\n{submission.message}"

        return NotificationPayload(
            title=f"{TITLE_PREFIX}{submission.subject}",
            body=body,
            target_urls=self.config.stateless_target_urls if self.config.is_stateless else None,
        )

    def build_headers(self) -> dict:
        headers = dict(self.config.headers)
        # Drop any configured spelling of Content-Type; the body is always JSON.
        for key in [k for k in headers if k.lower() == "content-type"]:
            del headers[key]
        headers["Content-Type"] = "application/json"
        return headers

    async def send_feedback_notification(self, submission: SubmissionRecord) -> None:
        """Send one notification for a submission. No retries.

        Args:
            submission: Decoded feedback submission

        Raises:
            UpstreamNotificationError: If the payload cannot be serialized, the
                request fails, or the endpoint answers with a non-2xx status
        """
        try:
            content = self.build_payload(submission).to_json()
        except ValueError as e:
            raise UpstreamNotificationError(
                f"failed to serialize notification: {e}"
            ) from e

        logger.info(
            "Apprise notify attempt",
            extra={
                "endpoint": self.config.display_url,
                "stateless": self.config.is_stateless,
                "source": submission.source,
            }
        )

        try:
            response = await self.client.post(
                self.config.endpoint_url,
                content=content,
                headers=self.build_headers(),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamNotificationError(
                f"failed to post: {self.config.display_url} answered {e.response.status_code}",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamNotificationError(
                f"failed to post to {self.config.display_url}: {e!r}"
            ) from e
        except (httpx.InvalidURL, UnicodeEncodeError) as e:
            # The request could not be built. The repr would echo the header value.
            raise UpstreamNotificationError(
                f"failed to build request for {self.config.display_url}: {type(e).__name__}"
            ) from e

        logger.info(
            f"Feedback notification sent via Apprise: {response.status_code}",
            extra={
                "endpoint": self.config.display_url,
                "status_code": response.status_code,
            }
        )
