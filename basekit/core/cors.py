"""CORS policy built from CorsConfig."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import DEFAULT_CORS_ORIGIN, CorsConfig, parse_origins

__all__ = ["ALLOWED_HEADERS", "ALLOWED_METHODS", "add_cors", "cors_options", "parse_origins"]

ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "X-CSRF-Token"]


def cors_options(cfg: CorsConfig) -> dict[str, Any]:
    """Keyword arguments for Starlette's CORSMiddleware.

    Falls back to the local Vite dev server when no origin is configured.
    """
    origins = list(cfg.origins) or [DEFAULT_CORS_ORIGIN]
    return {
        "allow_origins": origins,
        "allow_methods": list(ALLOWED_METHODS),
        "allow_headers": list(ALLOWED_HEADERS),
        "allow_credentials": cfg.credentials,
    }


def add_cors(app: FastAPI, cfg: CorsConfig) -> None:
    app.add_middleware(CORSMiddleware, **cors_options(cfg))
