"""
Page rendering

Every page is a client-side component plus its props. A full page load
receives ``templates/app.html`` with the page object embedded; navigation
requests from the client bundle (``X-Inertia: true``) receive the page
object as JSON.
"""

import logging
from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from portal.config import settings
from portal.localisation import localisation
from portal.schemas.user import UserResource

logger = logging.getLogger(__name__)

TEMPLATES_PATH = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_PATH))

STATUS_SESSION_KEY = "status"


def flash(request: Request, status: str) -> None:
    """Store a one-off status message shown on the next page."""
    request.session[STATUS_SESSION_KEY] = status


def current_locale(request: Request) -> str:
    return getattr(request.state, "locale", None) or localisation.get_default_locale()


def shared_props(request: Request) -> dict[str, Any]:
    user = getattr(request.state, "user", None)
    return {
        "auth": {"user": UserResource.from_user(user).to_camel_dict() if user is not None else None},
        "locale": localisation.get_iso639_locale(current_locale(request)),
        "supportedLocales": localisation.get_supported_locales("iso639"),
        "status": request.session.pop(STATUS_SESSION_KEY, None),
    }


def render(request: Request, component: str, props: dict[str, Any] | None = None, status_code: int = 200):
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"

    page = {
        "component": component,
        "props": jsonable_encoder({**shared_props(request), **(props or {})}),
        "url": url,
        "version": settings.app_version,
    }

    if request.headers.get("X-Inertia") == "true":
        return JSONResponse(page, status_code=status_code, headers={"X-Inertia": "true", "Vary": "X-Inertia"})

    return templates.TemplateResponse(
        request,
        "app.html",
        {
            "page": page,
            "lang": page["props"]["locale"],
            "app_name": settings.app_name,
        },
        status_code=status_code,
    )


def redirect(url: str) -> RedirectResponse:
    # 303 turns PUT/PATCH/DELETE into a GET on the target
    return RedirectResponse(url, status_code=303)


def redirect_back(request: Request, fallback: str = "/") -> RedirectResponse:
    referer = request.headers.get("referer")
    if referer and referer.startswith(str(request.base_url)):
        return redirect(referer)
    return redirect(fallback)
