"""Uploaded file descriptors and the field-name indexed tree built from them."""

from __future__ import annotations

import posixpath
import re
from enum import IntEnum
from typing import Any, Iterator, Mapping, Sequence, Union

from msgspec import Struct


class UploadError(IntEnum):
    """Upload status codes reported by the transport for each file."""

    OK = 0
    INI_SIZE = 1
    FORM_SIZE = 2
    PARTIAL = 3
    NO_FILE = 4
    NO_TMP_DIR = 6
    CANT_WRITE = 7
    EXTENSION = 8


class UploadedFile(Struct, frozen=True):
    """A single file received with a request."""

    client_filename: str
    client_media_type: str
    temp_filename: str
    size: int = 0
    error: UploadError = UploadError.OK

    @property
    def is_ok(self) -> bool:
        return self.error == UploadError.OK

    @property
    def base_name(self) -> str:
        """Client filename without directories and extension."""

        name = posixpath.basename(self.client_filename.replace("\\", "/"))
        stem, _, _ = name.rpartition(".")
        return stem or name

    @property
    def extension(self) -> str:
        name = posixpath.basename(self.client_filename.replace("\\", "/"))
        stem, dot, suffix = name.rpartition(".")
        if not dot or not stem:
            return ""
        return suffix.lower()


UploadTree = dict[Any, Union[UploadedFile, "UploadTree"]]
CompoundName = Union[str, Sequence[Union[str, int]]]

_ATTRIBUTES = ("name", "type", "tmp_name", "size", "error")
_COMPOUND_NAME = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_INDEX = re.compile(r"\[([^\[\]]*)\]")


def build_uploaded_files(raw: Mapping[str, Mapping[str, Any]] | None) -> UploadTree:
    """Rebuild a tree of :class:`UploadedFile` from transport upload arrays.

    Each field of ``raw`` carries five sibling structures (``name``, ``type``,
    ``tmp_name``, ``size`` and ``error``) sharing one shape. The walk descends
    all five in step and emits a descriptor wherever they bottom out, so a
    field ``Item[file][0]`` ends up at ``tree["Item"]["file"][0]``.
    """

    tree: UploadTree = {}
    if not raw:
        return tree
    for field, attributes in raw.items():
        try:
            branches = tuple(attributes[name] for name in _ATTRIBUTES)
        except KeyError as exc:
            raise ValueError(f"Upload field {field!r} is missing the {exc.args[0]!r} attribute") from exc
        tree[field] = _build_branch(field, *branches)
    return tree


def _build_branch(path: str, names: Any, types: Any, temp_names: Any, sizes: Any, errors: Any) -> Any:
    if not _is_branch(names):
        return UploadedFile(
            client_filename=str(names),
            client_media_type=str(types),
            temp_filename=str(temp_names),
            size=int(sizes),
            error=UploadError(int(errors)),
        )
    branch: UploadTree = {}
    for key, name in _items(names):
        try:
            siblings = [_child(values, key) for values in (types, temp_names, sizes, errors)]
        except (KeyError, IndexError, TypeError) as exc:
            raise ValueError(f"Upload field {path}[{key}] has mismatched attribute structures") from exc
        branch[key] = _build_branch(f"{path}[{key}]", name, *siblings)
    return branch


def _is_branch(node: Any) -> bool:
    return isinstance(node, Mapping) or (isinstance(node, Sequence) and not isinstance(node, (str, bytes)))


def _items(node: Any) -> Iterator[tuple[Any, Any]]:
    if isinstance(node, Mapping):
        return iter(node.items())
    return iter(enumerate(node))


def _child(node: Any, key: Any) -> Any:
    if not _is_branch(node):
        raise TypeError(key)
    return node[key]


def parse_compound_name(name: CompoundName) -> list[str | int]:
    """Split ``Item[file][0]`` into ``["Item", "file", "0"]``.

    Sequences are taken as already split. A name that is not valid bracket
    notation is treated as one opaque segment.
    """

    if not isinstance(name, str):
        return list(name)
    match = _COMPOUND_NAME.match(name)
    if match is None:
        return [name]
    return [match.group(1), *_INDEX.findall(match.group(2))]


def _lookup(node: Any, segment: str | int) -> Any:
    if isinstance(node, Mapping):
        if segment in node:
            return node[segment]
        if isinstance(segment, str) and segment.lstrip("-").isdigit():
            return node.get(int(segment))
        if isinstance(segment, int):
            return node.get(str(segment))
        return None
    if _is_branch(node):
        try:
            index = int(segment)
        except ValueError:
            return None
        if 0 <= index < len(node):
            return node[index]
    return None


def _resolve(tree: Any, name: CompoundName) -> Any:
    node = tree
    for segment in parse_compound_name(name):
        node = _lookup(node, segment)
        if node is None:
            return None
    return node


def find_uploaded_file(tree: Any, name: CompoundName) -> UploadedFile | None:
    """Return the descriptor addressed by ``name`` or ``None`` when absent."""

    node = _resolve(tree, name)
    if isinstance(node, UploadedFile):
        return node
    return None


def find_uploaded_files(tree: Any, name: CompoundName) -> list[UploadedFile]:
    """Return every descriptor at or below ``name`` in structural order."""

    return list(iter_uploaded_files(_resolve(tree, name)))


def iter_uploaded_files(node: Any) -> Iterator[UploadedFile]:
    if isinstance(node, UploadedFile):
        yield node
    elif _is_branch(node):
        for _, child in _items(node):
            yield from iter_uploaded_files(child)


__all__ = [
    "CompoundName",
    "UploadError",
    "UploadTree",
    "UploadedFile",
    "build_uploaded_files",
    "find_uploaded_file",
    "find_uploaded_files",
    "iter_uploaded_files",
    "parse_compound_name",
]
