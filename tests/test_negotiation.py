from __future__ import annotations

import pytest

from herald.negotiation import negotiate_language, parse_accept_header, rank_accept_header


@pytest.mark.parametrize("header", ["", " ", "\t \n", None, ",", " ; , ;"])
def test_parse_accept_header_blank_values(header: str | None) -> None:
    assert parse_accept_header(header) == {}


def test_parse_accept_header_keeps_encounter_order() -> None:
    parsed = parse_accept_header("audio/*; q=0.2, audio/basic")
    assert parsed == {"audio/basic": {"q": 1.0}, "audio/*": {"q": 0.2}}
    assert list(parsed) == ["audio/*", "audio/basic"]


def test_parse_accept_header_parameters_and_flags() -> None:
    parsed = parse_accept_header(
        """text/plain; q=0.5,
        application/json; version=1.0,
        application/xml; version=2.0; x,
        text/x-dvi; q=0.8, text/x-c"""
    )
    assert parsed == {
        "text/plain": {"q": 0.5},
        "application/json": {"q": 1.0, "version": "1.0"},
        "application/xml": {"q": 1.0, "version": "2.0", "x": None},
        "text/x-dvi": {"q": 0.8},
        "text/x-c": {"q": 1.0},
    }
    assert list(parsed["application/xml"]) == ["q", "version", "x"]


def test_parse_accept_header_quality_comes_first() -> None:
    parsed = parse_accept_header("text/html; level=1; q=0.7")
    assert list(parsed["text/html"].items()) == [("q", 0.7), ("level", "1")]


def test_parse_accept_header_quoted_values() -> None:
    parsed = parse_accept_header('text/html; title="a, b; c"; note="say \\"hi\\"", text/plain')
    assert parsed["text/html"] == {"q": 1.0, "title": "a, b; c", "note": 'say "hi"'}
    assert parsed["text/plain"] == {"q": 1.0}


@pytest.mark.parametrize("quality", ["abc", "1.5", "-0.1", "nan"])
def test_parse_accept_header_drops_entries_with_bad_quality(quality: str) -> None:
    parsed = parse_accept_header(f"text/html; q={quality}, text/plain")
    assert parsed == {"text/plain": {"q": 1.0}}


def test_parse_accept_header_duplicate_token_last_wins() -> None:
    parsed = parse_accept_header("text/html; q=0.1, text/plain, text/html; q=0.9")
    assert parsed["text/html"] == {"q": 0.9}
    assert len(parsed) == 2


def test_rank_accept_header_orders_by_quality_then_specificity() -> None:
    parsed = parse_accept_header("*/*; q=0.1, text/*, text/html; level=1, text/html, image/png; q=0")
    assert rank_accept_header(parsed) == ["text/html", "text/*", "*/*"]


def test_rank_accept_header_prefers_parameters_at_equal_quality() -> None:
    parsed = parse_accept_header("application/json, application/xml; version=2")
    assert rank_accept_header(parsed) == ["application/xml", "application/json"]


def test_rank_accept_header_languages() -> None:
    parsed = parse_accept_header("de; q=0.5, en-US, ru-RU; q=0.8")
    assert rank_accept_header(parsed) == ["en-US", "ru-RU", "de"]


@pytest.mark.parametrize(
    ("acceptable", "supported", "expected"),
    [
        (["en-us", "de", "ru-RU"], ["ru", "de"], "de"),
        (["en-us", "de", "ru-RU"], ["ru", "de-DE"], "de-DE"),
        (["en-us", "de", "ru-RU"], ["de", "ru"], "de"),
        (["en-us", "de", "ru-RU"], ["ru-ru"], "ru-ru"),
        (["en-us", "de", "ru-RU"], ["en"], "en"),
        (["en-us", "de"], ["ru-ru", "pl"], "ru-ru"),
        (["en-us", "de"], ["ru-RU", "pl"], "ru-RU"),
        (["en-us", "de"], ["pl", "ru-ru"], "pl"),
        (["EN_us"], ["fr", "en-US"], "en-US"),
        (["ru-RU"], ["ru", "ru-ru"], "ru"),
        (["en-us"], ["en", "en-US"], "en"),
        (["zh-Hant-TW", "fr"], ["fr", "zh-Hant"], "zh-Hant"),
        (["zh"], ["fr", "zh-Hant-TW"], "zh-Hant-TW"),
        (["de-AT"], ["fr", "de-DE"], "fr"),
    ],
)
def test_negotiate_language(acceptable: list[str], supported: list[str], expected: str) -> None:
    assert negotiate_language(acceptable, supported, "en") == expected


def test_negotiate_language_falls_back_on_empty_lists() -> None:
    assert negotiate_language([], ["pl", "de"], "en") == "en"
    assert negotiate_language(["de"], [], "en") == "en"
    assert negotiate_language([], [], "fr") == "fr"


def test_parse_keeps_header_order_and_rank_sorts_by_quality() -> None:
    parsed = parse_accept_header("audio/*; q=0.2, audio/basic")
    assert list(parsed) == ["audio/*", "audio/basic"]
    assert rank_accept_header(parsed) == ["audio/basic", "audio/*"]
