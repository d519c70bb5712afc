"""Framework exception types."""

from __future__ import annotations

from typing import Any

from .http import Status, ensure_status, reason_phrase
from .serialization import json_encode


class HeraldError(Exception):
    """Base error type."""


class ConfigurationError(HeraldError):
    """Raised when the server context or configuration cannot satisfy a lookup."""


class HTTPError(HeraldError):
    """Structured HTTP error that is msgspec serializable."""

    def __init__(self, status: int, detail: Any) -> None:
        super().__init__(status, detail)
        self.status = ensure_status(status)
        self.detail = detail

    @property
    def reason(self) -> str:
        return reason_phrase(self.status)

    def to_response_body(self) -> bytes:
        return json_encode({"error": {"status": self.status, "detail": self.detail}})


class UnsupportedMediaTypeError(HTTPError):
    """Raised when body parameters are requested for an unknown content type."""

    def __init__(self, content_type: str | None) -> None:
        super().__init__(
            Status.UNSUPPORTED_MEDIA_TYPE,
            {"detail": "unsupported_media_type", "content_type": content_type},
        )
        self.content_type = content_type
