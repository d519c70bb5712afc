from __future__ import annotations

import pytest

from herald.exceptions import ConfigurationError
from herald.paths import resolve_path_info, split_path_info


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (["some", "path"], ["some", "path"]),
        (("some", ""), ["some", ""]),
        ("some/path", ["some", "path"]),
        ("some/path/", ["some", "path", ""]),
        ("/some/path/", ["some", "path", ""]),
        ("", []),
        ("/", [""]),
        ("some%2fpath", ["some%2fpath"]),
    ],
)
def test_split_path_info(value, expected: list[str]) -> None:
    assert split_path_info(value) == expected


@pytest.mark.parametrize(
    ("url", "base_url", "script_url", "expected"),
    [
        ("/path/project/index.py", "/path/project", "/path/project/index.py", []),
        ("/path/project/index.py/some/path", "/path/project", "/path/project/index.py", ["some", "path"]),
        ("/path/project/some/path", "/path/project", "/path/project/index.py", ["some", "path"]),
        ("/path/project/some/path/", "/path/project", "/path/project/index.py", ["some", "path", ""]),
        ("/path/project/some%2fpath", "/path/project", "/path/project/index.py", ["some/path"]),
        ("/path/project/some%20path?x=1#top", "/path/project", "/path/project/index.py", ["some path"]),
        ("/posts", "", "/index.py", ["posts"]),
        ("/", "/", "/index.py", []),
        ("/path/project/", "/path/project", "/path/project/index.py", []),
        ("/path/project/index.py/", "/path/project", "/path/project/index.py", []),
        ("http://example.com/app/items", "/app", "", ["items"]),
    ],
)
def test_resolve_path_info(url: str, base_url: str, script_url: str, expected: list[str]) -> None:
    assert resolve_path_info(url, base_url, script_url) == expected


def test_resolve_path_info_outside_of_base_url() -> None:
    with pytest.raises(ConfigurationError):
        resolve_path_info("/elsewhere/page", "/path/project", "/path/project/index.py")


def test_resolve_path_info_matches_whole_segments() -> None:
    with pytest.raises(ConfigurationError):
        resolve_path_info("/path/projectx/page", "/path/project", "/path/project/index.py")
