"""HTML rendering over Jinja2."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError

logger = logging.getLogger(__name__)

CSRF_PLACEHOLDER = "{{ csrf_token }}"


class TemplateRenderer:
    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._templates = Jinja2Templates(directory=str(directory))

    @property
    def env(self):
        return self._templates.env

    def render(self, name: str, context: Optional[Mapping[str, Any]] = None, status_code: int = 200) -> Response:
        """Render ``name`` to an HTMLResponse; template failures become a bare 500."""
        try:
            html = self._templates.get_template(name).render(**dict(context or {}))
        except TemplateError:
            logger.exception("Template %s failed to render", name)
            return PlainTextResponse("Internal Server Error", status_code=500)
        return HTMLResponse(html, status_code=status_code)


def inject_csrf_token(html: str, token: str) -> str:
    """Fill the ``{{ csrf_token }}`` placeholder of a static SPA shell."""
    return html.replace(CSRF_PLACEHOLDER, token)
