"""Engine (connection pool) construction for the SQL backend."""
from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from basekit.core.config import DbConfig
from basekit.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


def normalize_url(url: str) -> str:
    """Route bare ``mysql://`` URLs through PyMySQL."""
    parsed = make_url(url)
    if parsed.drivername == "mysql":
        parsed = parsed.set(drivername="mysql+pymysql")
    return parsed.render_as_string(hide_password=False)


def create_pool(config: DbConfig) -> Engine:
    """Create the single shared pool for the process.

    Called once at startup and handed to whoever needs it; there is no
    module-level engine.
    """
    url = (config.url or "").strip()
    if not url:
        raise ConfigurationError("DATABASE_URL is not set")
    kwargs = {"future": True, "pool_pre_ping": True}
    if config.max_connections:
        kwargs["pool_size"] = config.max_connections
        kwargs["max_overflow"] = 0
    try:
        engine = create_engine(normalize_url(url), **kwargs)
    except (ArgumentError, NoSuchModuleError, ValueError) as exc:
        raise ConfigurationError(f"Cannot create database pool: {exc}") from exc
    except ImportError as exc:
        raise ConfigurationError(f"Database driver is not installed: {exc}") from exc
    logger.info(
        "Database pool created: dialect=%s max_connections=%s",
        engine.dialect.name,
        config.max_connections or "default",
    )
    return engine
