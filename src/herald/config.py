"""Request layer configuration objects."""

from __future__ import annotations

from typing import Any, Mapping

import msgspec
from msgspec import Struct

from .exceptions import ConfigurationError
from .http import READ_ONLY_METHODS


class RequestConfig(Struct, frozen=True):
    """Typed configuration shared by every :class:`~herald.requests.Request`."""

    enable_csrf_validation: bool = True
    csrf_param: str = "_csrf"
    csrf_header: str = "X-CSRF-Token"
    safe_methods: tuple[str, ...] = READ_ONLY_METHODS
    method_param: str = "_method"
    default_language: str = "en"
    max_query_params: int = 1024

    def is_safe_method(self, method: str) -> bool:
        """Return ``True`` when ``method`` is exempt from CSRF enforcement."""

        candidate = method.upper()
        return any(candidate == safe.upper() for safe in self.safe_methods)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RequestConfig":
        """Build a configuration from plain data such as a parsed settings file."""

        try:
            return msgspec.convert(dict(data), type=cls)
        except msgspec.ValidationError as exc:
            raise ConfigurationError(f"Invalid request configuration: {exc}") from exc


DEFAULT_CONFIG = RequestConfig()
