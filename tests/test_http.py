from __future__ import annotations

import msgspec
import pytest

from herald.context import RequestContext
from herald.exceptions import HTTPError, UnsupportedMediaTypeError
from herald.http import Status, ensure_status, normalize_method, reason_phrase


def test_ensure_status_validates_range() -> None:
    assert ensure_status(Status.OK) == 200
    assert ensure_status(404) == 404
    with pytest.raises(ValueError):
        ensure_status(99)
    with pytest.raises(ValueError):
        ensure_status(600)


def test_reason_phrase_for_known_and_unknown_statuses() -> None:
    assert reason_phrase(Status.OK) == "OK"
    assert reason_phrase(Status.UNSUPPORTED_MEDIA_TYPE) == "Unsupported Media Type"
    assert reason_phrase(299) == "Unknown Status"
    assert reason_phrase(799) == "Unknown Status"


@pytest.mark.parametrize(("method", "expected"), [("get", "GET"), (" Patch ", "PATCH"), ("DELETE", "DELETE")])
def test_normalize_method(method: str, expected: str) -> None:
    assert normalize_method(method) == expected


def test_normalize_method_rejects_empty() -> None:
    with pytest.raises(ValueError):
        normalize_method("  ")


def test_http_error_body() -> None:
    error = HTTPError(Status.BAD_REQUEST, {"detail": "csrf_validation_failed"})
    assert error.status == 400
    assert error.reason == "Bad Request"
    assert msgspec.json.decode(error.to_response_body()) == {
        "error": {"status": 400, "detail": {"detail": "csrf_validation_failed"}}
    }


def test_unsupported_media_type_error() -> None:
    error = UnsupportedMediaTypeError("text/csv")
    assert isinstance(error, HTTPError)
    assert error.status == 415
    assert error.content_type == "text/csv"
    assert error.detail == {"detail": "unsupported_media_type", "content_type": "text/csv"}


def test_context_from_environ() -> None:
    environ = {
        "REQUEST_METHOD": "GET",
        "SCRIPT_NAME": "/app/index.py",
        "QUERY_STRING": "a=1&b=&a=2",
        "wsgi.input": object(),
    }
    context = RequestContext.from_environ(environ, session={"_csrf": "secret"})
    assert context.server["SCRIPT_NAME"] == "/app/index.py"
    assert "wsgi.input" not in context.server
    assert context.query == {"a": "2", "b": ""}
    assert context.session == {"_csrf": "secret"}
    assert context.form == {}


def test_context_from_environ_keeps_explicit_query() -> None:
    context = RequestContext.from_environ({"QUERY_STRING": "a=1"}, query={"b": "2"})
    assert context.query == {"b": "2"}
