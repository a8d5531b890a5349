"""
Locale middleware

Sets request.state.locale from:
  1. the locale stored in the session (the user's saved language)
  2. Accept-Language header (quality-weighted, best-match)
  3. settings.default_locale (fallback)

Registered inside SessionMiddleware so the session is readable here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from portal.constants import LOCALE_SESSION_KEY
from portal.localisation import localisation

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import Request
    from starlette.responses import Response


class SetLocaleMiddleware(BaseHTTPMiddleware):
    """Resolve the request locale and attach it to request.state.locale."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        user_language = request.session.get(LOCALE_SESSION_KEY) if "session" in request.scope else None
        localisation.set_locale_from_request(request, user_language)
        return await call_next(request)
