"""Per-request server context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, MutableMapping
from urllib.parse import parse_qsl


@dataclass(slots=True)
class RequestContext:
    """Mutable state owned by the code handling one request.

    ``server`` holds CGI-style variables (``SCRIPT_NAME``, ``SERVER_PORT``,
    ...). ``query`` and ``form`` are the parameters decoded by the transport,
    ``files`` the raw upload arrays and ``session`` the session store used for
    the CSRF secret. :meth:`herald.requests.Request.resolve` writes matched
    route parameters back into ``query``.
    """

    server: MutableMapping[str, Any] = field(default_factory=dict)
    query: MutableMapping[str, Any] = field(default_factory=dict)
    form: MutableMapping[str, Any] = field(default_factory=dict)
    files: MutableMapping[str, Any] = field(default_factory=dict)
    session: MutableMapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Mapping[str, Any], **kwargs: Any) -> "RequestContext":
        """Build a context from a WSGI ``environ``.

        String values are copied into ``server`` and the query string is
        decoded into ``query``; ``wsgi.*`` objects are left behind.
        """

        server = {key: value for key, value in environ.items() if isinstance(value, str)}
        query: dict[str, Any] = {}
        for key, value in parse_qsl(server.get("QUERY_STRING", ""), keep_blank_values=True):
            query[key] = value
        kwargs.setdefault("query", query)
        return cls(server=server, **kwargs)
