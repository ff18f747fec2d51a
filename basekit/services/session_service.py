"""Session helpers (resolve the current user from a JWT cookie)."""
from __future__ import annotations

import json
import logging
from typing import Callable, Optional, TypeVar

from fastapi import Request

from basekit.core.config import get_settings
from basekit.core.errors import AuthenticationError
from basekit.core.security import CurrentUser, decode_jwt

logger = logging.getLogger(__name__)

T = TypeVar("T")


def current_user(
    request: Request,
    secret: Optional[str],
    cookie_name: str,
    parse_subject: Callable[[str], Optional[T]] = CurrentUser,
) -> Optional[T]:
    """Return the parsed subject of the JWT cookie, or None.

    The cookie holds JSON like ``{"token": "<jwt>"}``. Any problem (no secret,
    no cookie, bad JSON, invalid or expired token) yields None.
    """
    if not secret:
        return None
    raw = request.cookies.get(cookie_name)
    if not raw:
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    token = payload.get("token") if isinstance(payload, dict) else None
    if not isinstance(token, str):
        return None
    try:
        claims = decode_jwt(token, secret)
    except AuthenticationError as exc:
        logger.info("Rejected auth cookie: %s", exc)
        return None
    return parse_subject(claims.sub)


def optional_user(request: Request) -> Optional[CurrentUser]:
    """Dependency returning the CurrentUser for the request, if any."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    return current_user(request, settings.jwt_secret, settings.jwt_cookie_name)
