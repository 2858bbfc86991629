"""Pydantic schemas for feedback submissions and outgoing notifications."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class SubmissionRecord(BaseModel):
    """A decoded feedback form submission.

    Accepted as JSON or as url-encoded form data on ``POST /``. ``email`` stays
    None when the submitter left it out.
    """

    email: Optional[str] = Field(
        default=None,
        description="Submitter email, if they chose to leave one",
        examples=["user@example.com"],
    )

    subject: str = Field(
        ...,
        description="Short subject line",
        examples=["Bug"],
    )

    message: str = Field(
        ...,
        description="Free-form feedback text",
        examples=["It broke"],
    )

    source: str = Field(
        ...,
        description="Where the feedback was submitted from (site, app, page)",
        examples=["web"],
    )

    model_config = ConfigDict(extra="ignore", strict=True, frozen=True)


class NotificationPayload(BaseModel):
    """JSON body posted to the Apprise API notify endpoint.

    ``target_urls`` is sent as ``urls`` and only in stateless mode.
    """

    title: str
    body: str
    target_urls: Optional[str] = Field(default=None, serialization_alias="urls")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
