"""Decode a feedback submission from JSON or url-encoded form data.

Decoders are tried in order, starting with the one matching the declared
``Content-Type`` (JSON when the header is missing or unknown). A decoder that
finds the body is not its encoding at all lets the next decoder try; any other
failure ends negotiation. When nothing succeeds, the declared decoder's error
is reported.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import parse_qsl

from pydantic import ValidationError

from feedback_relay.lib.exceptions import SubmissionDecodeError
from feedback_relay.schemas.feedback import SubmissionRecord

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 2 * 1024 * 1024


def _media_type(content_type: Optional[str]) -> str:
    """Strip parameters (charset, boundary) and normalize case."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _fields_from_validation_error(error: ValidationError) -> List[str]:
    fields = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item.get("loc", ()))
        if loc and loc not in fields:
            fields.append(loc)
    return fields


class SubmissionDecoder(ABC):
    """One wire encoding a submission may arrive in."""

    name = "base"
    media_types: Tuple[str, ...] = ()

    def accepts(self, media_type: str) -> bool:
        return media_type in self.media_types

    @abstractmethod
    def decode(self, body: bytes) -> SubmissionRecord:
        """Decode and validate a body in this encoding."""

    def _validate(self, data: object) -> SubmissionRecord:
        try:
            return SubmissionRecord.model_validate(data)
        except ValidationError as e:
            fields = _fields_from_validation_error(e)
            raise SubmissionDecodeError(
                f"{self.name} submission failed validation: {', '.join(fields) or 'body'}",
                status_code=422,
                fields=fields,
            ) from e


class JsonSubmissionDecoder(SubmissionDecoder):
    """``application/json`` (and ``+json`` suffixed) bodies."""

    name = "json"
    media_types = ("application/json",)

    def accepts(self, media_type: str) -> bool:
        return super().accepts(media_type) or media_type.endswith("+json")

    def decode(self, body: bytes) -> SubmissionRecord:
        try:
            data = json.loads(body)
        except ValueError as e:
            raise SubmissionDecodeError(
                f"body is not valid JSON: {e}", wrong_encoding=True,
            ) from e

        if not isinstance(data, dict):
            raise SubmissionDecodeError(
                "JSON body must be an object", status_code=422,
            )
        return self._validate(data)


class FormSubmissionDecoder(SubmissionDecoder):
    """``application/x-www-form-urlencoded`` bodies."""

    name = "form"
    media_types = ("application/x-www-form-urlencoded",)

    def decode(self, body: bytes) -> SubmissionRecord:
        try:
            pairs = parse_qsl(
                body.decode("utf-8"),
                keep_blank_values=True,
                strict_parsing=True,
            )
        except (UnicodeDecodeError, ValueError) as e:
            raise SubmissionDecodeError(
                f"body is not valid form data: {e}", wrong_encoding=True,
            ) from e

        # Last value wins for repeated keys.
        data: Dict[str, str] = dict(pairs)
        return self._validate(data)


DEFAULT_DECODERS: Tuple[SubmissionDecoder, ...] = (
    JsonSubmissionDecoder(),
    FormSubmissionDecoder(),
)


class ContentNegotiator:
    """Turn a raw request body into a SubmissionRecord."""

    def __init__(
        self,
        decoders: Sequence[SubmissionDecoder] = DEFAULT_DECODERS,
        max_body_bytes: int = MAX_BODY_BYTES,
    ):
        if not decoders:
            raise ValueError("at least one decoder is required")
        self.decoders = tuple(decoders)
        self.max_body_bytes = max_body_bytes

    def declared_decoder(self, content_type: Optional[str]) -> SubmissionDecoder:
        """Decoder selected by the Content-Type header, defaulting to the first."""
        media_type = _media_type(content_type)
        for decoder in self.decoders:
            if decoder.accepts(media_type):
                return decoder
        return self.decoders[0]

    def decode(self, body: bytes, content_type: Optional[str]) -> SubmissionRecord:
        """Decode a submission body.

        Args:
            body: Raw request body
            content_type: Value of the Content-Type header, if any

        Returns:
            SubmissionRecord

        Raises:
            SubmissionDecodeError: If no decoder accepts the body
        """
        if len(body) > self.max_body_bytes:
            raise SubmissionDecodeError(
                f"body of {len(body)} bytes exceeds limit of {self.max_body_bytes}",
                status_code=413,
            )
        if not body:
            raise SubmissionDecodeError("empty submission body")

        declared = self.declared_decoder(content_type)
        ordered = [declared] + [d for d in self.decoders if d is not declared]

        declared_error: Optional[SubmissionDecodeError] = None
        for decoder in ordered:
            try:
                record = decoder.decode(body)
            except SubmissionDecodeError as e:
                logger.debug("%s decoder rejected submission: %s", decoder.name, e)
                if decoder is declared:
                    declared_error = e
                if not e.wrong_encoding:
                    break
                continue

            if decoder is not declared:
                logger.debug(
                    "Submission declared as %r decoded as %s",
                    content_type, decoder.name,
                )
            return record

        # The declared decoder always runs first, so its error is set here.
        raise declared_error
