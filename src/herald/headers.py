"""Immutable, case-insensitive HTTP headers."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Union

HeaderValue = Union[str, Iterable[str]]
HeaderInput = Union[Mapping[str, HeaderValue], Iterable[tuple[str, str]], "Headers", None]


class Headers(Mapping[str, tuple[str, ...]]):
    """Case-insensitive mapping of header name to the ordered values received.

    Lookups ignore case; iteration yields the name as first supplied. The
    ``with_*`` helpers return new instances and never modify the receiver.
    """

    __slots__ = ("_items", "_names")

    def __init__(self, headers: HeaderInput = None) -> None:
        items: dict[str, tuple[str, ...]] = {}
        names: dict[str, str] = {}
        for name, value in _iter_pairs(headers):
            key = name.lower()
            names.setdefault(key, name)
            items[key] = items.get(key, ()) + (value,)
        self._items = items
        self._names = names

    @classmethod
    def _from_state(cls, items: dict[str, tuple[str, ...]], names: dict[str, str]) -> "Headers":
        instance = cls.__new__(cls)
        instance._items = items
        instance._names = names
        return instance

    def __getitem__(self, name: str) -> tuple[str, ...]:
        return self._items[name.lower()]

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._names.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._items == other._items
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._items.items())))

    def __repr__(self) -> str:
        items = ", ".join(f"{self._names[key]!r}: {values!r}" for key, values in self._items.items())
        return f"Headers({{{items}}})"

    def get_first(self, name: str, default: str | None = None) -> str | None:
        """Return the first value for ``name`` or ``default`` when missing."""

        values = self._items.get(name.lower())
        if not values:
            return default
        return values[0]

    def get_list(self, name: str) -> list[str]:
        return list(self._items.get(name.lower(), ()))

    def get_line(self, name: str) -> str | None:
        """Return all values for ``name`` joined the way they travel on the wire."""

        values = self._items.get(name.lower())
        if values is None:
            return None
        return ", ".join(values)

    def with_header(self, name: str, value: HeaderValue) -> "Headers":
        """Return a copy where ``name`` holds only ``value``."""

        key = name.lower()
        items = dict(self._items)
        names = dict(self._names)
        items[key] = _as_values(value)
        names[key] = name
        return Headers._from_state(items, names)

    def with_added(self, name: str, value: HeaderValue) -> "Headers":
        """Return a copy with ``value`` appended to the values of ``name``."""

        key = name.lower()
        items = dict(self._items)
        names = dict(self._names)
        items[key] = items.get(key, ()) + _as_values(value)
        names.setdefault(key, name)
        return Headers._from_state(items, names)

    def without(self, name: str) -> "Headers":
        key = name.lower()
        if key not in self._items:
            return self
        items = {k: v for k, v in self._items.items() if k != key}
        names = {k: v for k, v in self._names.items() if k != key}
        return Headers._from_state(items, names)

    def raw(self) -> list[tuple[str, str]]:
        return [(self._names[key], value) for key, values in self._items.items() for value in values]


def _as_values(value: HeaderValue) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


def _iter_pairs(headers: HeaderInput) -> Iterator[tuple[str, str]]:
    if headers is None:
        return
    if isinstance(headers, Headers):
        yield from headers.raw()
        return
    if isinstance(headers, Mapping):
        for name, value in headers.items():
            for item in _as_values(value):
                yield name, item
        return
    for name, value in headers:
        yield name, value


__all__ = ["HeaderInput", "HeaderValue", "Headers"]
