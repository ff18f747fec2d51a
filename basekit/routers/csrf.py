from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse

from basekit.core import csrf
from basekit.core.templates import inject_csrf_token

router = APIRouter(prefix="", tags=["csrf"])

NO_STORE = "no-store, no-cache, must-revalidate"


def _settings(request: Request):
    settings = getattr(getattr(request.app, "state", None), "settings", None)
    if settings:
        return settings
    raise RuntimeError("Settings not configured on app.state")


@router.get("/csrf")
def issue_csrf(request: Request):
    """Hand the current (or a fresh) token to a JS client and refresh the cookie."""
    cfg = _settings(request).csrf
    token = csrf.ensure_csrf_token(request, cfg)
    response = JSONResponse({"csrfToken": token}, headers={"Cache-Control": NO_STORE})
    csrf.set_csrf_cookie(response, cfg, token)
    return response


def spa_entry(request: Request) -> HTMLResponse:
    """Serve the SPA shell with a freshly issued token filled in."""
    cfg = _settings(request).csrf
    shell = getattr(request.app.state, "spa_html", None) or ""
    token = csrf.generate_csrf_token(cfg)
    response = HTMLResponse(inject_csrf_token(shell, token), headers={"Cache-Control": NO_STORE})
    csrf.set_csrf_cookie(response, cfg, token)
    return response
