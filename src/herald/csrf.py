"""Cross-site request forgery token handling."""

from __future__ import annotations

import base64
import binascii
import hmac
import logging
import secrets
from dataclasses import dataclass
from typing import Any, Callable, MutableMapping, Sequence, Union

from .config import RequestConfig
from .exceptions import HTTPError
from .http import Status

logger = logging.getLogger(__name__)

_TOKEN_BYTES = 24


@dataclass(slots=True, frozen=True)
class TokenAbsent:
    """No token was submitted through a channel."""


@dataclass(slots=True, frozen=True)
class TokenScalar:
    value: str


@dataclass(slots=True, frozen=True)
class TokenSequence:
    values: tuple[Any, ...]


SubmittedToken = Union[TokenAbsent, TokenScalar, TokenSequence]

_ABSENT = TokenAbsent()


def classify_token(value: Any) -> SubmittedToken | None:
    """Map a raw submitted value onto the token variants.

    ``None`` is absent. Strings are scalars, lists and tuples are sequences.
    Any other shape (numbers, booleans, mappings) returns ``None`` and can
    never validate.
    """

    if value is None:
        return _ABSENT
    if isinstance(value, str):
        return TokenScalar(value)
    if isinstance(value, (list, tuple)):
        return TokenSequence(tuple(value))
    return None


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(value: str) -> bytes:
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)


def _xor(left: bytes, right: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(left, right))


def mask_token(token: str) -> str:
    """Return ``token`` hidden behind a fresh random mask of the same length."""

    raw = token.encode("utf-8")
    mask = secrets.token_bytes(len(raw))
    return _b64encode(mask + _xor(mask, raw))


def unmask_token(masked: str) -> str:
    """Reverse :func:`mask_token`; malformed input unmasks to an empty string."""

    try:
        raw = _b64decode(masked)
    except (binascii.Error, ValueError):
        return ""
    if not raw or len(raw) % 2:
        return ""
    half = len(raw) // 2
    try:
        return _xor(raw[half:], raw[:half]).decode("utf-8")
    except UnicodeDecodeError:
        return ""


class CsrfState:
    """Per-session CSRF secret kept in a session-like mapping."""

    __slots__ = ("_masked", "key", "session")

    def __init__(self, session: MutableMapping[str, Any] | None = None, *, key: str = "_csrf") -> None:
        self.session: MutableMapping[str, Any] = session if session is not None else {}
        self.key = key
        self._masked: str | None = None

    @property
    def token(self) -> str:
        """Return the stored secret, generating one when the session has none."""

        stored = self.session.get(self.key)
        if not isinstance(stored, str) or not stored:
            stored = self._generate()
        return stored

    def masked_token(self, *, regenerate: bool = False) -> str:
        """Return the token to embed in forms and headers.

        The masked value is stable until :meth:`regenerate` is called so that
        every form rendered for one request carries the same value.
        """

        if regenerate:
            self.regenerate()
        if self._masked is None:
            self._masked = mask_token(self.token)
        return self._masked

    def regenerate(self) -> str:
        self._masked = None
        return self._generate()

    def _generate(self) -> str:
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        self.session[self.key] = token
        return token

    def matches(self, submitted: str) -> bool:
        stored = self.session.get(self.key)
        if not isinstance(stored, str) or not stored:
            return False
        return hmac.compare_digest(unmask_token(submitted).encode("utf-8"), stored.encode("utf-8"))


def _validate_submitted(submitted: SubmittedToken | None, state: CsrfState) -> bool:
    if isinstance(submitted, TokenScalar):
        if not submitted.value:
            logger.debug("Rejected CSRF token: empty value")
            return False
        if state.matches(submitted.value):
            return True
        logger.debug("Rejected CSRF token: mismatch")
        return False
    if isinstance(submitted, TokenSequence):
        logger.debug("Rejected CSRF token: sequence submitted")
        return False
    if isinstance(submitted, TokenAbsent):
        logger.debug("Rejected CSRF token: not supplied")
        return False
    logger.debug("Rejected CSRF token: unsupported value type")
    return False


def validate_csrf_token(
    token: Any = None,
    *,
    method: str,
    config: RequestConfig,
    state: CsrfState,
    header_tokens: Sequence[str] = (),
    body_token: Any = None,
    load_body_token: Callable[[], Any] | None = None,
) -> bool:
    """Decide whether a request carries an acceptable CSRF token.

    Validation always passes when checking is disabled or ``method`` is safe.
    Otherwise the first supplied channel is checked, in order: ``token``, the
    CSRF header, then the body parameter. ``load_body_token`` defers
    reading the body until the other channels came up empty. Never raises.
    """

    if not config.enable_csrf_validation:
        return True
    if config.is_safe_method(method):
        return True
    if token is not None:
        return _validate_submitted(classify_token(token), state)
    if header_tokens:
        if len(header_tokens) == 1:
            return _validate_submitted(TokenScalar(header_tokens[0]), state)
        return _validate_submitted(TokenSequence(tuple(header_tokens)), state)
    if body_token is None and load_body_token is not None:
        body_token = load_body_token()
    return _validate_submitted(classify_token(body_token), state)


class CsrfProtection:
    """Middleware rejecting requests whose CSRF token does not validate."""

    def process(self, request: Any, handler: Callable[[Any], Any]) -> Any:
        if not request.validate_csrf_token():
            logger.info("Blocked %s %s: CSRF validation failed", request.method, request.url)
            raise HTTPError(Status.BAD_REQUEST, {"detail": "csrf_validation_failed"})
        return handler(request)


__all__ = [
    "CsrfProtection",
    "CsrfState",
    "SubmittedToken",
    "TokenAbsent",
    "TokenScalar",
    "TokenSequence",
    "classify_token",
    "mask_token",
    "unmask_token",
    "validate_csrf_token",
]
