"""Signed double-submit CSRF tokens.

A token is ``v1.<nonce>.<tag>`` where tag = HMAC-SHA256(secret, nonce), both
parts URL-safe base64 without padding. The cookie carries the token and the
client echoes it in the ``X-CSRF-Token`` header (or a form field). Tokens do
not expire and are not single-use: any token signed with the active secret
stays valid for as long as the cookie lives.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import secrets

from fastapi import HTTPException, Request, Response

from .config import CsrfConfig, get_settings
from .errors import CsrfValidationError

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "csrf"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_FORM_FIELD = "csrf_token"
TOKEN_VERSION = "v1"
NONCE_BYTES = 32


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes | None:
    padded = text + "=" * (-len(text) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError):
        return None
    # only the canonical encoding is accepted, so spare trailing bits can't be flipped
    if _b64encode(raw) != text:
        return None
    return raw


def _sign(secret: bytes, nonce: bytes) -> bytes:
    return hmac.new(secret, nonce, hashlib.sha256).digest()


def generate_csrf_token(cfg: CsrfConfig) -> str:
    nonce = secrets.token_bytes(NONCE_BYTES)
    tag = _sign(cfg.secret, nonce)
    return f"{TOKEN_VERSION}.{_b64encode(nonce)}.{_b64encode(tag)}"


def _token_problem(cfg: CsrfConfig, token: str) -> str | None:
    """Return None for a valid token, otherwise the reason it was rejected."""
    parts = token.split(".")
    if len(parts) != 3 or parts[0] != TOKEN_VERSION:
        return "malformed"
    nonce = _b64decode(parts[1])
    tag = _b64decode(parts[2])
    if nonce is None or tag is None:
        return "malformed"
    if len(nonce) != NONCE_BYTES or len(tag) != hashlib.sha256().digest_size:
        return "malformed"
    if not hmac.compare_digest(_sign(cfg.secret, nonce), tag):
        return "bad_signature"
    return None


def verify_token(cfg: CsrfConfig, token: str) -> bool:
    return _token_problem(cfg, token) is None


def check_csrf(cfg: CsrfConfig, cookie_token: str | None, submitted_token: str | None) -> None:
    """Raise CsrfValidationError unless both tokens are present, equal and signed by ``cfg``."""
    if not cookie_token:
        raise CsrfValidationError("missing_cookie")
    if not submitted_token:
        raise CsrfValidationError("missing_submitted")
    if not hmac.compare_digest(cookie_token.encode("utf-8"), submitted_token.encode("utf-8")):
        raise CsrfValidationError("mismatch")
    problem = _token_problem(cfg, cookie_token)
    if problem:
        raise CsrfValidationError(problem)


def validate_csrf(request: Request, cfg: CsrfConfig, supplied_token: str | None = None) -> None:
    cookie_token = request.cookies.get(CSRF_COOKIE_NAME)
    header_token = request.headers.get(CSRF_HEADER_NAME)
    token = (supplied_token or "").strip() or (header_token or "").strip()
    try:
        check_csrf(cfg, cookie_token, token)
    except CsrfValidationError as exc:
        logger.warning("CSRF rejected for %s %s: %s", request.method, request.url.path, exc.reason)
        raise


def ensure_csrf_token(request: Request, cfg: CsrfConfig) -> str:
    token = request.cookies.get(CSRF_COOKIE_NAME)
    if not token or not verify_token(cfg, token):
        token = generate_csrf_token(cfg)
    return token


def set_csrf_cookie(response: Response, cfg: CsrfConfig, token: str) -> None:
    response.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        httponly=cfg.cookie_http_only,
        secure=cfg.cookie_secure,
        samesite="lax",
        path="/",
    )


def _settings_for(request: Request):
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def enforce_csrf(request: Request, supplied_token: str | None = None) -> None:
    """FastAPI-side guard: no-op when CSRF is disabled, 403 on failure."""
    cfg = _settings_for(request).csrf
    if not cfg.enabled:
        return
    try:
        validate_csrf(request, cfg, supplied_token)
    except CsrfValidationError as exc:
        raise HTTPException(403, exc.message)


def require_csrf(request: Request) -> None:
    """Dependency form of :func:`enforce_csrf` for header-based clients."""
    enforce_csrf(request)
