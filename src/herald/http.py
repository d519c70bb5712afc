"""HTTP status codes and method helpers."""

from __future__ import annotations

from enum import IntEnum
from http import HTTPStatus as _HTTPStatus


class Status(IntEnum):
    """Enumeration of the HTTP status codes raised by the request layer."""

    OK = 200
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406
    PAYLOAD_TOO_LARGE = 413
    UNSUPPORTED_MEDIA_TYPE = 415
    INTERNAL_SERVER_ERROR = 500


READ_ONLY_METHODS: tuple[str, ...] = ("GET", "HEAD", "OPTIONS")


def ensure_status(status: int | Status) -> int:
    """Normalize ``status`` to an ``int`` and ensure it is within the HTTP range."""

    code = int(status)
    if code < 100 or code > 599:
        raise ValueError(f"Invalid HTTP status code: {status}")
    return code


def reason_phrase(status: int | Status) -> str:
    """Return the HTTP reason phrase for ``status`` if known."""

    try:
        return _HTTPStatus(ensure_status(status)).phrase
    except ValueError:
        return "Unknown Status"


def normalize_method(method: str) -> str:
    """Return ``method`` stripped and upper-cased."""

    normalized = method.strip().upper()
    if not normalized:
        raise ValueError("HTTP method must not be empty")
    return normalized


__all__ = ["READ_ONLY_METHODS", "Status", "ensure_status", "normalize_method", "reason_phrase"]
