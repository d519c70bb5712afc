"""Path info resolution relative to the entry script and base URL."""

from __future__ import annotations

import logging
from typing import Sequence
from urllib.parse import unquote

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def split_path_info(value: str | Sequence[str]) -> list[str]:
    """Split an explicit path info value into segments.

    One leading ``/`` is consumed, a trailing ``/`` leaves an empty last
    segment: ``"/"`` is ``[""]`` while ``""`` is ``[]``. Sequences are taken
    verbatim.
    """

    if not isinstance(value, str):
        return [str(segment) for segment in value]
    if not value:
        return []
    if value.startswith("/"):
        value = value[1:]
    return value.split("/")


def _encoded_segments(path: str) -> list[str]:
    return [unquote(segment) for segment in path.split("/")]


def _strip_prefix(segments: list[str], prefix: str) -> list[str] | None:
    prefix_segments = _encoded_segments(prefix.rstrip("/"))
    if len(prefix_segments) > len(segments):
        return None
    if segments[: len(prefix_segments)] != prefix_segments:
        return None
    remainder = segments[len(prefix_segments) :]
    if remainder == [""]:
        return []
    return remainder


def resolve_path_info(raw_uri: str, base_url: str, script_url: str) -> list[str]:
    """Return the decoded path segments that follow the script or base URL.

    The path is split on literal ``/`` before percent-decoding, so an encoded
    slash stays inside its segment. ``script_url`` is tried before
    ``base_url`` which lets both ``/index.py/extra`` and ``/extra`` address
    the same application. The application root itself resolves to ``[]``.
    """

    path = raw_uri.split("#", 1)[0].split("?", 1)[0]
    if "://" in path:
        # absolute form request target
        _, _, remainder = path.partition("://")
        slash = remainder.find("/")
        path = remainder[slash:] if slash >= 0 else ""
    segments = _encoded_segments(path)
    remainder = None
    if script_url:
        remainder = _strip_prefix(segments, script_url)
    if remainder is None:
        remainder = _strip_prefix(segments, base_url)
    if remainder is None:
        logger.debug("Path %r is outside of base URL %r and script URL %r", path, base_url, script_url)
        raise ConfigurationError("Unable to determine the path info of the current request.")
    return remainder


__all__ = ["resolve_path_info", "split_path_info"]
