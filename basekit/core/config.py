"""
Configuration helpers for basekit.

Settings are read from environment variables once at startup and exposed as
frozen dataclasses so that routers/services never touch os.environ directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import hashlib
import logging
import os
from pathlib import Path
import secrets
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .errors import ConfigurationError, MailConfigurationError

logger = logging.getLogger(__name__)

MEBIBYTE = 1024 * 1024
DEFAULT_MAX_BODY_BYTES = 10 * MEBIBYTE
DEFAULT_CORS_ORIGIN = "http://localhost:5173"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DbConfig:
    url: str
    max_connections: Optional[int] = None
    sql_debug: bool = False


@dataclass(frozen=True)
class CsrfConfig:
    secret: bytes = field(repr=False)
    cookie_secure: bool = True
    cookie_http_only: bool = True
    enabled: bool = False


@dataclass(frozen=True)
class CorsConfig:
    origins: tuple[str, ...] = ()
    credentials: bool = False


@dataclass(frozen=True)
class HttpConfig:
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES


@dataclass(frozen=True)
class UploadConfig:
    root: Path = Path("uploads")
    image_dir: str = "images"
    file_dir: str = "files"


@dataclass(frozen=True)
class ImageConfig:
    max_width: int = 1920
    max_height: int = 1920


@dataclass(frozen=True)
class MailConfig:
    host: str
    port: int
    username: str
    password: str = field(repr=False)
    from_email: str
    from_name: str = "Notifier"
    notify_to: tuple[str, ...] = ()


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    db: DbConfig
    csrf: CsrfConfig
    cors: CorsConfig
    http: HttpConfig
    upload: UploadConfig
    image: ImageConfig
    mail: Optional[MailConfig]
    timezone: str = "UTC"
    jwt_secret: Optional[str] = field(default=None, repr=False)
    jwt_cookie_name: str = "auth"
    log_level: str = "INFO"

    @property
    def mail_enabled(self) -> bool:
        return self.mail is not None


# -------------------------- parsing helpers --------------------------
def _raw(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def read_flag(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = environ.get(name)
    if value is None:
        return default
    return value.strip().strip("\"'").lower() in _TRUTHY


def read_int(environ: Mapping[str, str], name: str, default: Optional[int] = None, *, minimum: int = 0) -> Optional[int]:
    """Parse an integer variable; a present but unparsable value is an error."""
    raw = _raw(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def split_list(raw: Optional[str]) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def derive_secret(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()


def random_secret() -> bytes:
    return secrets.token_bytes(32)


# -------------------------- sub-configs --------------------------
def _db_config(environ: Mapping[str, str]) -> DbConfig:
    url = _raw(environ, "DATABASE_URL")
    if not url:
        raise ConfigurationError("DATABASE_URL must be configured.")
    try:
        make_url(url)
    except (ArgumentError, ValueError) as exc:
        raise ConfigurationError(f"DATABASE_URL is malformed: {exc}") from None
    return DbConfig(
        url=url,
        max_connections=read_int(environ, "DATABASE_MAX_CONN", None, minimum=1),
        sql_debug="SQL_DEBUG" in environ,
    )


def _csrf_config(environ: Mapping[str, str]) -> CsrfConfig:
    raw_secret = environ.get("CSRF_SECRET")
    secret = derive_secret(raw_secret) if raw_secret is not None else random_secret()
    return CsrfConfig(
        secret=secret,
        cookie_secure=read_flag(environ, "CSRF_COOKIE_SECURE", True),
        cookie_http_only=read_flag(environ, "CSRF_COOKIE_HTTPONLY", True),
        enabled=read_flag(environ, "CSRF_ENABLED", raw_secret is not None),
    )


def parse_origins(raw: Optional[str]) -> tuple[str, ...]:
    """Split a comma separated origin list, dropping blanks and invalid header values."""
    return tuple(
        origin
        for origin in split_list(raw)
        if origin.isprintable() and not any(ch.isspace() for ch in origin)
    )


def _cors_config(environ: Mapping[str, str]) -> CorsConfig:
    return CorsConfig(
        origins=parse_origins(environ.get("CORS_ORIGINS")),
        credentials=read_flag(environ, "CORS_ALLOW_CREDENTIALS", False),
    )


def _http_config(environ: Mapping[str, str]) -> HttpConfig:
    max_bytes = read_int(environ, "HTTP_MAX_BODY_BYTES", None, minimum=1)
    if max_bytes is None:
        max_mb = read_int(environ, "HTTP_MAX_BODY_MB", None, minimum=1)
        max_bytes = max_mb * MEBIBYTE if max_mb is not None else DEFAULT_MAX_BODY_BYTES
    return HttpConfig(max_body_bytes=max_bytes)


def _upload_config(environ: Mapping[str, str]) -> UploadConfig:
    return UploadConfig(
        root=Path(_raw(environ, "UPLOAD_ROOT") or "uploads"),
        image_dir=(_raw(environ, "UPLOAD_IMAGE_DIR") or "images").strip("/"),
        file_dir=(_raw(environ, "UPLOAD_FILE_DIR") or "files").strip("/"),
    )


def _image_config(environ: Mapping[str, str]) -> ImageConfig:
    return ImageConfig(
        max_width=read_int(environ, "IMAGE_MAX_WIDTH", 1920, minimum=1),
        max_height=read_int(environ, "IMAGE_MAX_HEIGHT", 1920, minimum=1),
    )


def _required(environ: Mapping[str, str], name: str) -> str:
    value = _raw(environ, name)
    if value is None:
        raise MailConfigurationError(f"{name} not set")
    return value


def _mail_config(environ: Mapping[str, str]) -> MailConfig:
    host = _required(environ, "SMTP_HOST")
    raw_port = _required(environ, "SMTP_PORT")
    try:
        port = int(raw_port)
    except ValueError:
        raise MailConfigurationError(f"SMTP_PORT parse error: {raw_port!r}") from None
    if not 0 < port < 65536:
        raise MailConfigurationError(f"SMTP_PORT out of range: {port}")
    return MailConfig(
        host=host,
        port=port,
        username=_required(environ, "SMTP_USERNAME"),
        password=_required(environ, "SMTP_PASSWORD"),
        from_email=_required(environ, "SMTP_FROM_EMAIL"),
        from_name=_raw(environ, "SMTP_FROM_NAME") or "Notifier",
        notify_to=split_list(environ.get("NOTIFY_TO_EMAIL")),
    )


def _optional_mail_config(environ: Mapping[str, str]) -> Optional[MailConfig]:
    if not _raw(environ, "SMTP_HOST"):
        logger.info("SMTP_HOST not set; mail disabled")
        return None
    try:
        return _mail_config(environ)
    except MailConfigurationError as exc:
        logger.warning("Mail disabled: %s", exc)
        return None


def _timezone(environ: Mapping[str, str]) -> str:
    name = _raw(environ, "APP_TIMEZONE") or "UTC"
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigurationError(f"APP_TIMEZONE is not a known timezone: {name!r}") from None
    return name


# -------------------------- entry points --------------------------
def load_environment(environ: Optional[Mapping[str, str]] = None) -> None:
    """Load a dotenv file into os.environ outside production.

    DOTENV_FILE wins; otherwise ``.env.{APP_ENV}`` and then ``.env`` are tried.
    Variables that are already set are never overridden.
    """
    env = os.environ if environ is None else environ
    app_env = (env.get("APP_ENV") or "development").lower()
    if app_env == "production":
        return
    explicit = env.get("DOTENV_FILE")
    if explicit:
        load_dotenv(explicit, override=False)
        return
    if not load_dotenv(f".env.{app_env}", override=False):
        load_dotenv(".env", override=False)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from ``environ`` (os.environ after dotenv loading by default).

    The database section is resolved first so a missing DATABASE_URL fails
    before anything else is looked at.
    """
    if environ is None:
        load_environment()
        environ = os.environ
    db = _db_config(environ)
    return Settings(
        app_env=(_raw(environ, "APP_ENV") or "development").lower(),
        db=db,
        csrf=_csrf_config(environ),
        cors=_cors_config(environ),
        http=_http_config(environ),
        upload=_upload_config(environ),
        image=_image_config(environ),
        mail=_optional_mail_config(environ),
        timezone=_timezone(environ),
        jwt_secret=_raw(environ, "JWT_SECRET"),
        jwt_cookie_name=_raw(environ, "JWT_COOKIE_NAME") or "auth",
        log_level=(_raw(environ, "LOG_LEVEL") or "INFO").upper(),
    )


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    return load_settings()
