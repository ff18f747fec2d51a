"""Entry point that builds the app from the process environment."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from basekit.app import create_app
from basekit.core.config import load_settings
from basekit.db.pool import create_pool
from basekit.db.sql_adapter import SqlDb


def create_app_from_env(spa_shell: Optional[str] = None) -> FastAPI:
    """Factory for uvicorn/gunicorn (``--factory``).

    Configuration errors propagate so a misconfigured process never starts.
    """
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    engine = create_pool(settings.db)
    db = SqlDb(engine, sql_debug=settings.db.sql_debug)
    spa_html = Path(spa_shell).read_text(encoding="utf-8") if spa_shell else None
    return create_app(settings, db, spa_html=spa_html)


__all__ = ["create_app", "create_app_from_env"]
