"""Test support utilities for request resolution tests."""

from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

_PLACEHOLDER = re.compile(r"<([a-zA-Z_][a-zA-Z0-9_]*)>")


class RuleResolver:
    """Minimal pattern-to-route resolver standing in for a URL manager.

    Rules map a pattern such as ``post/<id>`` to a route name; placeholders
    match one path segment and become route parameters.
    """

    def __init__(self, rules: Mapping[str, str]) -> None:
        self.calls: list[tuple[list[str], dict[str, Any]]] = []
        self._rules = [(self._compile(pattern), route) for pattern, route in rules.items()]

    @staticmethod
    def _compile(pattern: str) -> re.Pattern[str]:
        regex = _PLACEHOLDER.sub(lambda match: f"(?P<{match.group(1)}>[^/]+)", re.escape(pattern))
        return re.compile(f"^{regex}$")

    def resolve(
        self, path_info: Sequence[str], params: Mapping[str, Any]
    ) -> tuple[str, dict[str, Any]] | None:
        self.calls.append((list(path_info), dict(params)))
        path = "/".join(path_info)
        for pattern, route in self._rules:
            match = pattern.match(path)
            if match is not None:
                return route, dict(match.groupdict())
        return None


class CountingMiddleware:
    """Middleware recording how often it is built and run."""

    instances = 0
    events: list[str] = []

    def __init__(self) -> None:
        type(self).instances += 1

    @classmethod
    def reset(cls) -> None:
        cls.instances = 0
        cls.events.clear()

    def process(self, request: Any, handler: Any) -> Any:
        type(self).events.append("counting")
        return handler(request)
