"""Security helpers (JWT issuance and verification)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from .errors import AuthenticationError

JWT_ALGORITHM = "HS256"
DEFAULT_TTL = timedelta(hours=48)


@dataclass(frozen=True)
class Claims:
    sub: str
    exp: int


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated principal resolved from a request."""

    subject: str


def create_jwt(subject_id: int | str, secret: str, ttl: timedelta = DEFAULT_TTL) -> str:
    """Sign a token whose ``sub`` is ``subject_id`` and which expires after ``ttl``."""
    expires_at = datetime.now(timezone.utc) + ttl
    payload = {"sub": str(subject_id), "exp": int(expires_at.timestamp())}
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_jwt(token: str, secret: str) -> Claims:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise AuthenticationError(f"invalid token: {exc}") from exc
    return Claims(sub=str(payload["sub"]), exp=int(payload["exp"]))
