"""
Locale handling

Supported locales are keyed in ISO 15897 form (``en``, ``fr``, ``en_GB``);
browsers and the client bundle speak ISO 639 / BCP 47 (``en-GB``). This
module converts between the two and decides which locale a request uses.
"""

from __future__ import annotations

from typing import Any


def parse_accept_language(header: str, supported: list[str]) -> str | None:
    """Parse an Accept-Language header and return the best matching locale.

    Tags are ordered by q-value (default 1.0). Each tag is tried as an exact
    match first, then by its base language. ``supported`` may use either
    ``-`` or ``_`` separators; the matching entry is returned as given.
    """
    if not header:
        return None

    weighted: list[tuple[float, str]] = []
    for part in header.split(","):
        part = part.strip()
        if not part:
            continue
        if ";q=" in part:
            tag, q_str = part.split(";q=", 1)
            try:
                q = float(q_str.strip())
            except ValueError:
                q = 1.0
        else:
            tag = part
            q = 1.0
        weighted.append((q, tag.strip()))

    # Stable sort keeps header order for equal q-values
    weighted.sort(key=lambda x: x[0], reverse=True)

    normalised = [s.replace("-", "_").lower() for s in supported]

    for q, tag in weighted:
        if q <= 0:
            continue
        tag_lower = tag.replace("-", "_").lower()
        if tag_lower in normalised:
            return supported[normalised.index(tag_lower)]
        base = tag_lower.split("_")[0]
        if base in normalised:
            return supported[normalised.index(base)]

    return None


class Localisation:
    """Resolves, validates and converts the application's locales."""

    def __init__(self, default_locale: str, supported_locales: dict[str, dict[str, str]]):
        self.default_locale = default_locale
        self.supported_locales = supported_locales

    @staticmethod
    def get_iso15897_locale(locale: str) -> str:
        return locale.replace("-", "_")

    @staticmethod
    def get_iso639_locale(locale: str) -> str:
        return locale.replace("_", "-")

    def get_language_from_locale(self, locale: str) -> str:
        locale = self.get_iso15897_locale(locale)
        position = locale.find("_")
        if position <= 0:
            return locale
        return locale[:position]

    def get_default_locale(self) -> str:
        return self.default_locale

    def is_supported_locale(self, locale: str | None) -> bool:
        return bool(locale) and locale in self.supported_locales

    def get_supported_locales(self, format: str = "iso15897") -> dict[str, dict[str, Any]]:
        if format == "iso15897":
            return self.supported_locales

        return {
            self.get_iso639_locale(key): {**value, "regional": self.get_iso639_locale(value["regional"])}
            for key, value in self.supported_locales.items()
        }

    def set_locale(self, request, locale: str) -> None:
        """Make ``locale`` the active locale for ``request``."""
        if not self.is_supported_locale(locale):
            raise ValueError(f"Locale [{locale}] is not supported.")
        request.state.locale = locale

    def resolve_locale(self, user_language: str | None = None, accept_language: str = "") -> str:
        """Pick the locale for a request.

        Order: the user's saved language (with an extended locale falling
        back to its base language), the Accept-Language header, the default.
        """
        return (
            self._get_locale_from_user(user_language)
            or parse_accept_language(accept_language, list(self.supported_locales))
            or self.default_locale
        )

    def set_locale_from_request(self, request, user_language: str | None = None) -> str:
        locale = self.resolve_locale(user_language, request.headers.get("Accept-Language", ""))
        self.set_locale(request, locale)
        return locale

    def _get_locale_from_user(self, user_language: str | None) -> str | None:
        if not user_language:
            return None

        locales = [self.get_iso15897_locale(user_language)]
        if self._is_extended_locale(locales[0]):
            locales.append(self.get_language_from_locale(locales[0]))

        return next((locale for locale in locales if self.is_supported_locale(locale)), None)

    @staticmethod
    def _is_extended_locale(locale: str) -> bool:
        return "_" in locale or "-" in locale
