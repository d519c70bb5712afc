from __future__ import annotations

from herald.headers import Headers


def test_lookup_ignores_case() -> None:
    headers = Headers({"Content-Type": "text/html", "Accept": ["a", "b"]})
    assert headers["content-type"] == ("text/html",)
    assert "ACCEPT" in headers
    assert 1 not in headers
    assert headers.get_first("accept") == "a"
    assert headers.get_list("Accept") == ["a", "b"]
    assert headers.get_line("accept") == "a, b"
    assert headers.get_line("missing") is None
    assert headers.get_first("missing", "fallback") == "fallback"
    assert list(headers) == ["Content-Type", "Accept"]
    assert len(headers) == 2


def test_pairs_accumulate_values() -> None:
    headers = Headers([("X-Tag", "one"), ("x-tag", "two")])
    assert headers["X-Tag"] == ("one", "two")
    assert headers.raw() == [("X-Tag", "one"), ("X-Tag", "two")]
    assert Headers(headers) == headers


def test_copies_leave_original_untouched() -> None:
    original = Headers({"Accept": "text/html"})
    replaced = original.with_header("accept", "application/json")
    added = original.with_added("Accept", ["text/plain"])
    removed = original.without("ACCEPT")
    assert original["Accept"] == ("text/html",)
    assert replaced["Accept"] == ("application/json",)
    assert added["Accept"] == ("text/html", "text/plain")
    assert "Accept" not in removed
    assert original.without("Missing") is original


def test_equality_and_hash() -> None:
    first = Headers({"Accept": "a"})
    second = Headers({"accept": "a"})
    assert first == second
    assert hash(first) == hash(second)
    assert first != Headers({"Accept": "b"})
