"""Jinja2 template environment and the page rendering helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import RedirectResponse, Response
from starlette.status import HTTP_303_SEE_OTHER

from herodex.sessions import get_session_state

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _stat_width(value: int) -> int:
    """Clamp a power stat into a 0-100 bar width; raw values are not clamped."""
    return max(0, min(int(value), 100))


templates.env.filters["stat_width"] = _stat_width


def render(
    request: Request,
    name: str,
    context: dict[str, Any] | None = None,
    *,
    status_code: int = 200,
) -> Response:
    """Render ``name`` with the current user and any pending flash messages.

    Flash messages are popped here, so each one is shown on exactly one page.
    """

    session = get_session_state(request)
    payload: dict[str, Any] = {
        "user": session.user,
        "flashes": session.pop_flashes(),
    }
    payload.update(context or {})
    return templates.TemplateResponse(request, name, payload, status_code=status_code)


def redirect_to(url: str) -> RedirectResponse:
    """Post/redirect/get: always answer form posts with ``303 See Other``."""
    return RedirectResponse(url, status_code=HTTP_303_SEE_OTHER)


__all__ = ["TEMPLATES_DIR", "redirect_to", "render", "templates"]
