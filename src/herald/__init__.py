"""Herald: request negotiation, CSRF validation and middleware dispatch."""

from .config import RequestConfig
from .context import RequestContext
from .csrf import CsrfProtection, CsrfState, mask_token, unmask_token, validate_csrf_token
from .exceptions import ConfigurationError, HeraldError, HTTPError, UnsupportedMediaTypeError
from .headers import Headers
from .middleware import Middleware, MiddlewareDispatcher, dispatch
from .negotiation import negotiate_language, parse_accept_header, rank_accept_header
from .paths import resolve_path_info, split_path_info
from .requests import Request
from .routing import UrlResolver
from .uploads import UploadedFile, UploadError, build_uploaded_files, find_uploaded_file, find_uploaded_files

__all__ = [
    "ConfigurationError",
    "CsrfProtection",
    "CsrfState",
    "HTTPError",
    "Headers",
    "HeraldError",
    "Middleware",
    "MiddlewareDispatcher",
    "Request",
    "RequestConfig",
    "RequestContext",
    "UnsupportedMediaTypeError",
    "UploadError",
    "UploadedFile",
    "UrlResolver",
    "build_uploaded_files",
    "dispatch",
    "find_uploaded_file",
    "find_uploaded_files",
    "mask_token",
    "negotiate_language",
    "parse_accept_header",
    "rank_accept_header",
    "resolve_path_info",
    "split_path_info",
    "unmask_token",
    "validate_csrf_token",
]
