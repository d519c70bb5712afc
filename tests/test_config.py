from __future__ import annotations

import pytest

from herald.config import DEFAULT_CONFIG, RequestConfig
from herald.exceptions import ConfigurationError


def test_defaults() -> None:
    config = RequestConfig()
    assert config == DEFAULT_CONFIG
    assert config.enable_csrf_validation is True
    assert config.csrf_param == "_csrf"
    assert config.csrf_header == "X-CSRF-Token"
    assert config.safe_methods == ("GET", "HEAD", "OPTIONS")
    assert config.method_param == "_method"


@pytest.mark.parametrize(
    ("method", "expected"),
    [("GET", True), ("head", True), ("Options", True), ("POST", False), ("delete", False)],
)
def test_is_safe_method(method: str, expected: bool) -> None:
    assert DEFAULT_CONFIG.is_safe_method(method) is expected


def test_custom_safe_methods() -> None:
    config = RequestConfig(safe_methods=("get",))
    assert config.is_safe_method("GET")
    assert not config.is_safe_method("HEAD")


def test_from_mapping() -> None:
    config = RequestConfig.from_mapping(
        {"csrf_param": "token", "safe_methods": ["GET"], "max_query_params": 10}
    )
    assert config.csrf_param == "token"
    assert config.safe_methods == ("GET",)
    assert config.max_query_params == 10
    assert config.csrf_header == "X-CSRF-Token"


def test_from_mapping_rejects_invalid_values() -> None:
    with pytest.raises(ConfigurationError):
        RequestConfig.from_mapping({"max_query_params": "many"})


def test_config_is_frozen() -> None:
    with pytest.raises(AttributeError):
        DEFAULT_CONFIG.csrf_param = "other"  # type: ignore[misc]
