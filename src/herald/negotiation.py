"""Content negotiation helpers for ``Accept``-style headers."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence, Union

logger = logging.getLogger(__name__)

AttributeValue = Union[float, str, None]
AcceptEntries = dict[str, dict[str, AttributeValue]]


def parse_accept_header(header: str | None) -> AcceptEntries:
    """Parse ``header`` into an ordered mapping of token to attributes.

    ``q`` is always present and always the first attribute; parameters without
    a value are recorded with ``None``. Entries keep the order in which they
    appear in the header. Pass the result to :func:`rank_accept_header` to get
    the tokens most preferred first, as
    :attr:`herald.requests.Request.acceptable_content_types` does.
    Malformed entries are dropped rather than failing the whole header.
    """

    entries: AcceptEntries = {}
    if not header or not header.strip():
        return entries
    for raw_entry in _split_unquoted(header, ","):
        parts = [part.strip() for part in _split_unquoted(raw_entry, ";")]
        parts = [part for part in parts if part]
        if not parts:
            continue
        token = parts[0]
        attributes = _parse_attributes(parts[1:])
        if attributes is None:
            logger.debug("Dropping malformed accept entry %r", raw_entry.strip())
            continue
        entries[token] = attributes
    return entries


def _parse_attributes(params: Sequence[str]) -> dict[str, AttributeValue] | None:
    attributes: dict[str, AttributeValue] = {"q": 1.0}
    for param in params:
        name, separator, value = param.partition("=")
        name = name.strip()
        if not name:
            continue
        if not separator:
            attributes[name] = None
            continue
        value = _unquote(value.strip())
        if name.lower() == "q":
            quality = _parse_quality(value)
            if quality is None:
                return None
            attributes["q"] = quality
        else:
            attributes[name] = value
    return attributes


def _parse_quality(value: str) -> float | None:
    try:
        quality = float(value)
    except ValueError:
        return None
    if not 0.0 <= quality <= 1.0:
        return None
    return quality


def _split_unquoted(text: str, separator: str) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    quoted = False
    escaped = False
    for char in text:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\" and quoted:
            current.append(char)
            escaped = True
        elif char == '"':
            current.append(char)
            quoted = not quoted
        elif char == separator and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        inner = value[1:-1]
        result: list[str] = []
        escaped = False
        for char in inner:
            if escaped:
                result.append(char)
                escaped = False
            elif char == "\\":
                escaped = True
            else:
                result.append(char)
        return "".join(result)
    return value


def rank_accept_header(entries: Mapping[str, Mapping[str, AttributeValue]]) -> list[str]:
    """Return acceptable tokens, most preferred first.

    Higher quality wins, then the more specific token (fewer wildcards, more
    parameters), then the order of appearance. Tokens refused with ``q=0``
    are left out.
    """

    ranked = []
    for index, (token, attributes) in enumerate(entries.items()):
        quality = attributes.get("q", 1.0)
        if not isinstance(quality, (int, float)):
            quality = 1.0
        if quality <= 0:
            continue
        specificity = sum(1 for name in attributes if name != "q")
        ranked.append((-float(quality), token.count("*"), -specificity, index, token))
    ranked.sort()
    return [item[-1] for item in ranked]


def _normalize_language(tag: str) -> str:
    return tag.strip().replace("_", "-").lower()


def negotiate_language(acceptable: Sequence[str], supported: Iterable[str], fallback: str) -> str:
    """Pick the best entry of ``supported`` for a client's ranked ``acceptable`` tags.

    Acceptable tags are tried in order against every supported tag in order.
    A pair matches when the tags are equal (case-insensitive, ``_`` read as
    ``-``) or when one is a subtag prefix of the other (``de`` against
    ``de-DE``, ``en-us`` against ``en``). A match answers with the supported
    tag as the application spells it. When nothing matches the
    first supported tag is returned; ``fallback`` is used when either list is
    empty.
    """

    offered = list(supported)
    if not acceptable or not offered:
        return fallback
    normalized = [(_normalize_language(language), language) for language in offered]
    for candidate in acceptable:
        wanted = _normalize_language(candidate)
        if not wanted:
            continue
        for offered_tag, language in normalized:
            if (
                offered_tag == wanted
                or wanted.startswith(offered_tag + "-")
                or offered_tag.startswith(wanted + "-")
            ):
                return language
    return offered[0]


__all__ = [
    "AcceptEntries",
    "AttributeValue",
    "negotiate_language",
    "parse_accept_header",
    "rank_accept_header",
]
