"""Middleware chaining primitives."""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, Generic, Iterable, Mapping, Protocol, TypeVar, Union

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")
ResponseT = TypeVar("ResponseT")

Handler = Callable[[Any], Any]


class Middleware(Protocol):
    def process(self, request: Any, handler: Handler) -> Any:  # pragma: no cover - protocol
        ...


MiddlewareCallable = Callable[[Any, Handler], Any]
MiddlewareEntry = Union[Middleware, MiddlewareCallable, type, str, Mapping[str, Any]]


def instantiate_middleware(entry: MiddlewareEntry) -> MiddlewareCallable:
    """Turn a stack entry into a callable taking ``(request, handler)``.

    Instances exposing ``process`` and plain callables are used as they are.
    Classes are instantiated without arguments and ``"package.module:Name"``
    strings are imported first. A mapping names its class under ``"class"``
    (a class or an import string); the other keys become keyword arguments.
    """

    if isinstance(entry, Mapping):
        return _instantiate_from_mapping(entry)
    if isinstance(entry, str):
        entry = _import_string(entry)
    if isinstance(entry, type):
        logger.debug("Instantiating middleware %s", entry.__qualname__)
        entry = entry()
    process = getattr(entry, "process", None)
    if callable(process):
        return process
    if callable(entry):
        return entry
    raise ConfigurationError(f"Middleware entry {entry!r} is neither callable nor has a process() method")


def _instantiate_from_mapping(entry: Mapping[str, Any]) -> MiddlewareCallable:
    options = dict(entry)
    factory = options.pop("class", None)
    if isinstance(factory, str):
        factory = _import_string(factory)
    if not isinstance(factory, type):
        raise ConfigurationError(f"Middleware definition {entry!r} needs a \"class\" key naming a class")
    logger.debug("Instantiating middleware %s with %s", factory.__qualname__, sorted(options))
    try:
        instance = factory(**options)
    except TypeError as exc:
        raise ConfigurationError(f"Cannot instantiate middleware {factory.__qualname__}: {exc}") from exc
    return instantiate_middleware(instance)


def _import_string(path: str) -> Any:
    module_name, separator, attribute = path.partition(":")
    if not separator:
        module_name, _, attribute = path.rpartition(".")
    if not module_name or not attribute:
        raise ConfigurationError(f"Invalid middleware import path {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import middleware module {module_name!r}") from exc
    try:
        return getattr(module, attribute)
    except AttributeError as exc:
        raise ConfigurationError(f"Module {module_name!r} has no middleware {attribute!r}") from exc


class _MiddlewarePipeline:
    __slots__ = ("_entries", "_middlewares")

    def __init__(self, entries: tuple[MiddlewareEntry, ...]) -> None:
        self._entries = entries
        self._middlewares: list[MiddlewareCallable | None] = [None] * len(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _resolve(self, index: int) -> MiddlewareCallable:
        middleware = self._middlewares[index]
        if middleware is None:
            middleware = instantiate_middleware(self._entries[index])
            self._middlewares[index] = middleware
        return middleware

    def invoke(self, index: int, request: Any, endpoint: Handler) -> Any:
        if index >= len(self._entries):
            return endpoint(request)
        middleware = self._resolve(index)
        return middleware(request, _NextHandler(self, index + 1, endpoint))


class _NextHandler:
    """Continuation handed to a middleware: the rest of the stack."""

    __slots__ = ("_endpoint", "_index", "_pipeline")

    def __init__(self, pipeline: _MiddlewarePipeline, index: int, endpoint: Handler) -> None:
        self._pipeline = pipeline
        self._index = index
        self._endpoint = endpoint

    def __call__(self, request: Any) -> Any:
        return self._pipeline.invoke(self._index, request, self._endpoint)


class MiddlewareDispatcher(Generic[RequestT, ResponseT]):
    """Runs a request through an ordered middleware stack down to a handler.

    Entries are instantiated once, on first use, and shared by every
    dispatch. Exceptions raised anywhere in the chain reach the caller
    unchanged.
    """

    __slots__ = ("_pipeline",)

    def __init__(self, middleware: Iterable[MiddlewareEntry] = ()) -> None:
        self._pipeline = _MiddlewarePipeline(tuple(middleware))

    def __len__(self) -> int:
        return len(self._pipeline)

    def dispatch(self, request: RequestT, handler: Callable[[RequestT], ResponseT]) -> ResponseT:
        return self._pipeline.invoke(0, request, handler)

    def bind(self, handler: Callable[[RequestT], ResponseT]) -> Callable[[RequestT], ResponseT]:
        """Return ``handler`` wrapped by the whole stack."""

        if not len(self._pipeline):
            return handler
        return _NextHandler(self._pipeline, 0, handler)


def dispatch(
    request: RequestT,
    middleware: Iterable[MiddlewareEntry],
    handler: Callable[[RequestT], ResponseT],
) -> ResponseT:
    """Run ``request`` through ``middleware`` and finally ``handler``.

    With an empty stack ``handler`` is called directly. Otherwise the first
    entry is invoked with a continuation bound to the remaining entries.
    """

    return MiddlewareDispatcher(middleware).dispatch(request, handler)


__all__ = [
    "Handler",
    "Middleware",
    "MiddlewareCallable",
    "MiddlewareDispatcher",
    "MiddlewareEntry",
    "dispatch",
    "instantiate_middleware",
]
