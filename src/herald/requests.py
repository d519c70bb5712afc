"""Request primitives."""

from __future__ import annotations

import io
import logging
import posixpath
from typing import IO, Any, Mapping, Sequence, TypeVar, Union
from urllib.parse import parse_qsl, quote, urlsplit

import msgspec

from .config import DEFAULT_CONFIG, RequestConfig
from .context import RequestContext
from .csrf import CsrfState, validate_csrf_token
from .exceptions import ConfigurationError, HTTPError, UnsupportedMediaTypeError
from .headers import HeaderInput, Headers, HeaderValue
from .http import READ_ONLY_METHODS, Status, normalize_method
from .negotiation import AcceptEntries, negotiate_language, parse_accept_header, rank_accept_header
from .paths import resolve_path_info, split_path_info
from .routing import RouteResult, UrlResolver
from .serialization import json_decode
from .uploads import (
    CompoundName,
    UploadedFile,
    UploadTree,
    build_uploaded_files,
    find_uploaded_file,
    find_uploaded_files,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

BodyInput = Union[bytes, bytearray, memoryview, str, IO[bytes], None]

_FORM_URLENCODED = "application/x-www-form-urlencoded"
_MULTIPART = "multipart/form-data"
_JSON_TYPES = frozenset({"application/json", "text/json"})
_DEFAULT_PORTS = {"http": 80, "https": 443}

_STATE_SLOTS = (
    "_base_url",
    "_body",
    "_body_override",
    "_csrf",
    "_files_override",
    "_host_info",
    "_method",
    "_parts",
    "_path_info",
    "_query_override",
    "_script_url",
    "config",
    "context",
    "headers",
)


def _as_stream(body: BodyInput) -> IO[bytes]:
    if body is None:
        return io.BytesIO()
    if isinstance(body, str):
        return io.BytesIO(body.encode("utf-8"))
    if isinstance(body, (bytes, bytearray, memoryview)):
        return io.BytesIO(bytes(body))
    return body


def _parse_pairs(raw: str, limit: int) -> dict[str, str]:
    try:
        pairs = parse_qsl(raw, keep_blank_values=True, max_num_fields=limit)
    except ValueError as exc:
        raise HTTPError(Status.BAD_REQUEST, {"detail": "too_many_parameters"}) from exc
    return dict(pairs)


class Request:
    """Immutable view of an incoming request.

    Values derived from raw protocol data (query and body parameters, the
    uploaded file tree, path info, parsed ``Accept`` headers) are computed on
    first access and cached on the instance. Every ``with_*`` method returns
    a new request whose caches start empty; the receiver is left untouched.
    """

    __slots__ = (
        *_STATE_SLOTS,
        "_accept_cache",
        "_body_bytes",
        "_body_params",
        "_files",
        "_path_info_cache",
        "_query_params",
    )

    def __init__(
        self,
        method: str = "GET",
        uri: str = "/",
        headers: HeaderInput = None,
        body: BodyInput = None,
        *,
        context: RequestContext | None = None,
        config: RequestConfig | None = None,
        base_url: str | None = None,
        script_url: str | None = None,
        path_info: str | Sequence[str] | None = None,
        query_params: Mapping[str, Any] | None = None,
        body_params: Mapping[str, Any] | None = None,
        uploaded_files: UploadTree | None = None,
        host_info: str | None = None,
        csrf: CsrfState | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self.context = context
        self.headers = headers if isinstance(headers, Headers) else Headers(headers)
        self._method = normalize_method(method)
        self._parts = urlsplit(uri)
        self._body = _as_stream(body)
        self._base_url = base_url
        self._script_url = script_url
        self._path_info = None if path_info is None else split_path_info(path_info)
        self._query_override = None if query_params is None else dict(query_params)
        self._body_override = None if body_params is None else dict(body_params)
        self._files_override = uploaded_files
        self._host_info = host_info
        if csrf is None:
            session = context.session if context is not None else None
            csrf = CsrfState(session, key=self.config.csrf_param)
        self._csrf = csrf
        self._reset_caches()

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, Any],
        *,
        config: RequestConfig | None = None,
        **context_kwargs: Any,
    ) -> "Request":
        """Build a request and its :class:`RequestContext` from a WSGI environ."""

        context = RequestContext.from_environ(environ, **context_kwargs)
        headers: list[tuple[str, str]] = []
        for key, value in context.server.items():
            if key.startswith("HTTP_"):
                headers.append((key[5:].replace("_", "-").title(), value))
            elif key in {"CONTENT_TYPE", "CONTENT_LENGTH"} and value:
                headers.append((key.replace("_", "-").title(), value))
        uri = environ.get("REQUEST_URI") or environ.get("RAW_URI")
        if not uri:
            uri = quote(environ.get("SCRIPT_NAME", "") + environ.get("PATH_INFO", "")) or "/"
            if environ.get("QUERY_STRING"):
                uri = f"{uri}?{environ['QUERY_STRING']}"
        return cls(
            environ.get("REQUEST_METHOD", "GET"),
            uri,
            headers,
            environ.get("wsgi.input"),
            context=context,
            config=config,
        )

    def _reset_caches(self) -> None:
        self._accept_cache: dict[str, AcceptEntries] = {}
        self._body_bytes: bytes | None = None
        self._body_params: Any = msgspec.UNSET
        self._files: UploadTree | None = None
        self._path_info_cache: list[str] | None = None
        self._query_params: dict[str, Any] | None = None

    def _copy(self, **changes: Any) -> "Request":
        clone = Request.__new__(Request)
        for name in _STATE_SLOTS:
            setattr(clone, name, changes[name] if name in changes else getattr(self, name))
        clone._reset_caches()
        return clone

    def __repr__(self) -> str:
        return f"Request({self.method!r}, {self.url!r})"

    # -- copies -----------------------------------------------------------

    def with_method(self, method: str) -> "Request":
        return self._copy(_method=normalize_method(method))

    def with_uri(self, uri: str) -> "Request":
        return self._copy(_parts=urlsplit(uri))

    def with_header(self, name: str, value: HeaderValue) -> "Request":
        return self._copy(headers=self.headers.with_header(name, value))

    def with_added_header(self, name: str, value: HeaderValue) -> "Request":
        return self._copy(headers=self.headers.with_added(name, value))

    def without_header(self, name: str) -> "Request":
        return self._copy(headers=self.headers.without(name))

    def with_body(self, body: BodyInput) -> "Request":
        return self._copy(_body=_as_stream(body))

    def with_query_params(self, params: Mapping[str, Any] | None) -> "Request":
        """Return a copy whose query parameters are ``params`` instead of the ambient ones."""

        return self._copy(_query_override=None if params is None else dict(params))

    def with_body_params(self, params: Mapping[str, Any] | None) -> "Request":
        return self._copy(_body_override=None if params is None else dict(params))

    def with_uploaded_files(self, files: UploadTree | None) -> "Request":
        return self._copy(_files_override=files)

    def with_path_info(self, path_info: str | Sequence[str] | None) -> "Request":
        return self._copy(_path_info=None if path_info is None else split_path_info(path_info))

    def with_host_info(self, host_info: str | None) -> "Request":
        return self._copy(_host_info=host_info)

    def with_base_url(self, base_url: str | None) -> "Request":
        return self._copy(_base_url=base_url)

    def with_script_url(self, script_url: str | None) -> "Request":
        return self._copy(_script_url=script_url)

    def with_config(self, config: RequestConfig) -> "Request":
        return self._copy(config=config)

    def with_context(self, context: RequestContext | None) -> "Request":
        return self._copy(context=context)

    # -- method -----------------------------------------------------------

    @property
    def method(self) -> str:
        """Return the request method, honouring the form override on POST.

        The override field cannot downgrade a POST to a read-only verb.
        """

        if self._method == "POST" and self.context is not None:
            override = self.context.form.get(self.config.method_param)
            if isinstance(override, str) and override.strip():
                candidate = override.strip().upper()
                if candidate not in READ_ONLY_METHODS:
                    return candidate
        return self._method

    @property
    def is_get(self) -> bool:
        return self.method == "GET"

    @property
    def is_post(self) -> bool:
        return self.method == "POST"

    @property
    def is_put(self) -> bool:
        return self.method == "PUT"

    @property
    def is_patch(self) -> bool:
        return self.method == "PATCH"

    @property
    def is_delete(self) -> bool:
        return self.method == "DELETE"

    @property
    def is_head(self) -> bool:
        return self.method == "HEAD"

    @property
    def is_options(self) -> bool:
        return self.method == "OPTIONS"

    @property
    def is_ajax(self) -> bool:
        return self.headers.get_first("X-Requested-With") == "XMLHttpRequest"

    # -- headers ----------------------------------------------------------

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get_first(name, default)

    @property
    def content_type(self) -> str | None:
        """Return the media type of the body without its parameters."""

        raw = self.headers.get_first("Content-Type")
        if not raw:
            return None
        media_type = raw.split(";", 1)[0].strip().lower()
        return media_type or None

    @property
    def user_agent(self) -> str | None:
        return self.headers.get_first("User-Agent")

    @property
    def referrer(self) -> str | None:
        return self.headers.get_first("Referer")

    @property
    def origin(self) -> str | None:
        return self.headers.get_first("Origin")

    def _accept(self, name: str) -> AcceptEntries:
        entries = self._accept_cache.get(name)
        if entries is None:
            entries = parse_accept_header(self.headers.get_line(name))
            self._accept_cache[name] = entries
        return entries

    @property
    def acceptable_content_types(self) -> AcceptEntries:
        """Return the ``Accept`` entries ordered from most to least preferred."""

        entries = self._accept("Accept")
        return {token: entries[token] for token in rank_accept_header(entries)}

    @property
    def acceptable_languages(self) -> list[str]:
        return rank_accept_header(self._accept("Accept-Language"))

    def preferred_language(self, supported: Sequence[str] = ()) -> str:
        """Return the entry of ``supported`` that best fits ``Accept-Language``."""

        return negotiate_language(self.acceptable_languages, supported, self.config.default_language)

    # -- URI --------------------------------------------------------------

    @property
    def url(self) -> str:
        """Return the still-encoded path and query of the request URI."""

        path = self._parts.path or "/"
        if self._parts.query:
            return f"{path}?{self._parts.query}"
        return path

    @property
    def query_string(self) -> str:
        return self._parts.query

    @property
    def absolute_url(self) -> str:
        host_info = self.host_info
        if host_info is None:
            return self.url
        return f"{host_info}{self.url}"

    @property
    def _server(self) -> Mapping[str, Any]:
        if self.context is None:
            return {}
        return self.context.server

    @property
    def is_secure_connection(self) -> bool:
        if self._parts.scheme == "https":
            return True
        if str(self._server.get("HTTPS", "")).lower() in {"on", "1"}:
            return True
        forwarded = self.headers.get_first("X-Forwarded-Proto")
        return forwarded is not None and forwarded.split(",")[0].strip().lower() == "https"

    @property
    def host_info(self) -> str | None:
        """Return ``scheme://host[:port]`` for the request or ``None`` when unknown.

        An explicit value wins, then ``X-Forwarded-Host``, then ``Host``, then
        the ``SERVER_NAME`` of the server context.
        """

        if self._host_info is not None:
            return self._host_info
        scheme = "https" if self.is_secure_connection else "http"
        forwarded = self.headers.get_first("X-Forwarded-Host")
        if forwarded:
            return f"{scheme}://{forwarded.split(',')[0].strip()}"
        host = self.headers.get_first("Host")
        if host:
            return f"{scheme}://{host}"
        server_name = self.server_name
        if server_name:
            port = self.server_port
            if port is None or port == _DEFAULT_PORTS[scheme]:
                return f"{scheme}://{server_name}"
            return f"{scheme}://{server_name}:{port}"
        return None

    @property
    def host_name(self) -> str | None:
        host_info = self.host_info
        if host_info is None:
            return None
        return urlsplit(host_info).hostname

    @property
    def server_name(self) -> str | None:
        name = self._server.get("SERVER_NAME")
        return str(name) if name else None

    @property
    def server_port(self) -> int | None:
        port = self._server.get("SERVER_PORT")
        if port is None or port == "":
            return None
        try:
            return int(port)
        except (TypeError, ValueError):
            return None

    @property
    def user_ip(self) -> str | None:
        return self._server.get("REMOTE_ADDR")

    @property
    def script_file(self) -> str:
        script_file = self._server.get("SCRIPT_FILENAME")
        if not script_file:
            raise ConfigurationError("Unable to determine the entry script file path.")
        return str(script_file)

    @property
    def script_url(self) -> str:
        if self._script_url is not None:
            return self._script_url
        for key in ("SCRIPT_NAME", "ORIG_SCRIPT_NAME"):
            value = self._server.get(key)
            if value:
                return str(value)
        raise ConfigurationError("Unable to determine the entry script URL.")

    @property
    def base_url(self) -> str:
        """Return the directory of the entry script URL without a trailing slash."""

        if self._base_url is not None:
            return self._base_url.rstrip("/")
        return posixpath.dirname(self.script_url).rstrip("/\\")

    @property
    def path_info(self) -> list[str]:
        if self._path_info is not None:
            return list(self._path_info)
        if self._path_info_cache is None:
            script_url = self._script_url
            if script_url is None and self._base_url is None:
                script_url = self.script_url
            self._path_info_cache = resolve_path_info(self.url, self.base_url, script_url or "")
        return list(self._path_info_cache)

    # -- parameters -------------------------------------------------------

    @property
    def query_params(self) -> dict[str, Any]:
        """Return the query parameters.

        An explicit mapping given to :meth:`with_query_params` wins over the
        ambient ``context.query``; without a context the raw query string is
        decoded.
        """

        if self._query_override is not None:
            return dict(self._query_override)
        if self.context is not None:
            return dict(self.context.query)
        if self._query_params is None:
            self._query_params = _parse_pairs(self._parts.query, self.config.max_query_params)
        return dict(self._query_params)

    def query_param(self, name: str, default: Any = None) -> Any:
        return self.query_params.get(name, default)

    def query(self, model: type[T]) -> T:
        """Decode query parameters into ``model`` using msgspec."""

        try:
            return msgspec.convert(self.query_params, type=model, strict=False)
        except msgspec.ValidationError as exc:
            raise HTTPError(Status.BAD_REQUEST, {"detail": "invalid_query", "error": str(exc)}) from exc

    def body_bytes(self) -> bytes:
        """Read the whole body once, rewinding seekable streams around the read."""

        if self._body_bytes is None:
            stream = self._body
            seekable = stream.seekable() if hasattr(stream, "seekable") else False
            if seekable:
                stream.seek(0)
            raw = stream.read()
            if seekable:
                stream.seek(0)
            self._body_bytes = bytes(raw or b"")
        return self._body_bytes

    @property
    def body(self) -> IO[bytes]:
        return self._body

    def text(self) -> str:
        return self.body_bytes().decode()

    @property
    def body_params(self) -> dict[str, Any]:
        """Return the body parameters decoded according to the content type.

        POSTed forms come from the ambient ``context.form``; url-encoded
        bodies of other methods are parsed from the stream and JSON bodies are
        decoded with msgspec. Any other content type raises
        :class:`~herald.exceptions.UnsupportedMediaTypeError`.
        """

        if self._body_override is not None:
            return dict(self._body_override)
        if self._body_params is msgspec.UNSET:
            self._body_params = self._parse_body_params()
        return dict(self._body_params)

    def _parse_body_params(self) -> dict[str, Any]:
        content_type = self.content_type
        ambient = self.context.form if self.context is not None else None
        if content_type in {_FORM_URLENCODED, _MULTIPART} and self.method == "POST" and ambient is not None:
            return dict(ambient)
        if content_type == _FORM_URLENCODED:
            try:
                text = self.text()
            except UnicodeDecodeError as exc:
                raise HTTPError(Status.BAD_REQUEST, {"detail": "invalid_body_encoding"}) from exc
            return _parse_pairs(text, self.config.max_query_params)
        if content_type == _MULTIPART:
            return dict(ambient or {})
        if content_type is not None and (content_type in _JSON_TYPES or content_type.endswith("+json")):
            return self._decode_json_body()
        if content_type is None and not self.body_bytes():
            return {}
        logger.debug("Cannot decode %s body with content type %r", self.method, content_type)
        raise UnsupportedMediaTypeError(content_type)

    def _decode_json_body(self) -> dict[str, Any]:
        body = self.body_bytes()
        if not body:
            return {}
        try:
            decoded = json_decode(body)
        except msgspec.DecodeError as exc:
            raise HTTPError(Status.BAD_REQUEST, {"detail": "invalid_json"}) from exc
        if not isinstance(decoded, dict):
            raise HTTPError(Status.BAD_REQUEST, {"detail": "json_body_must_be_object"})
        return decoded

    def body_param(self, name: str, default: Any = None) -> Any:
        return self.body_params.get(name, default)

    def json(self, model: type[T] | None = None) -> T | Any:
        """Decode the JSON body using :mod:`msgspec`."""

        body = self.body_bytes()
        try:
            if model is None:
                return json_decode(body) if body else None
            return msgspec.json.decode(body, type=model)
        except msgspec.ValidationError as exc:
            raise HTTPError(Status.BAD_REQUEST, {"detail": "invalid_body", "error": str(exc)}) from exc
        except msgspec.DecodeError as exc:
            raise HTTPError(Status.BAD_REQUEST, {"detail": "invalid_json"}) from exc

    # -- uploads ----------------------------------------------------------

    @property
    def uploaded_files(self) -> UploadTree:
        if self._files_override is not None:
            return self._files_override
        if self._files is None:
            raw = self.context.files if self.context is not None else None
            self._files = build_uploaded_files(raw)
        return self._files

    def uploaded_file(self, name: CompoundName) -> UploadedFile | None:
        """Return the file posted under ``name`` (``"Item[0]"`` or ``["Item", 0]``)."""

        return find_uploaded_file(self.uploaded_files, name)

    def uploaded_files_by_name(self, name: CompoundName) -> list[UploadedFile]:
        return find_uploaded_files(self.uploaded_files, name)

    # -- CSRF -------------------------------------------------------------

    def csrf_token(self, *, regenerate: bool = False) -> str:
        """Return the masked CSRF token to send to the client."""

        return self._csrf.masked_token(regenerate=regenerate)

    def validate_csrf_token(self, token: Any = None) -> bool:
        """Check ``token``, or the header and body channels when it is ``None``."""

        return validate_csrf_token(
            token,
            method=self.method,
            config=self.config,
            state=self._csrf,
            header_tokens=self.headers.get_list(self.config.csrf_header),
            load_body_token=self._body_csrf_token,
        )

    def _body_csrf_token(self) -> Any:
        try:
            return self.body_params.get(self.config.csrf_param)
        except HTTPError as exc:
            logger.debug("No CSRF token in body: %s", exc.detail)
            return None

    # -- routing ----------------------------------------------------------

    def resolve(self, resolver: UrlResolver) -> RouteResult | None:
        """Resolve the route through ``resolver``.

        Route parameters take precedence over the query parameters they are
        merged with. Unless the query parameters were given explicitly with
        :meth:`with_query_params`, the merged mapping replaces the ambient
        ``context.query`` so later readers of the context see the route
        parameters.
        """

        params = self.query_params
        result = resolver.resolve(self.path_info, params)
        if result is None:
            logger.debug("No route matched path info %r", self.path_info)
            return None
        route, matched = result
        merged = dict(matched)
        for key, value in params.items():
            merged.setdefault(key, value)
        if self._query_override is None and self.context is not None:
            self.context.query.clear()
            self.context.query.update(merged)
            logger.debug("Wrote route parameters back into the request context: %s", sorted(matched))
        return route, merged


__all__ = ["BodyInput", "Request"]
