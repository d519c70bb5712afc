"""URL resolution contract."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence

RouteResult = tuple[str, dict[str, Any]]


class UrlResolver(Protocol):
    """Maps path info and query parameters to a route.

    Implementations return ``None`` when no route matches.
    """

    def resolve(
        self, path_info: Sequence[str], params: Mapping[str, Any]
    ) -> tuple[str, Mapping[str, Any]] | None:  # pragma: no cover - protocol
        ...


__all__ = ["RouteResult", "UrlResolver"]
