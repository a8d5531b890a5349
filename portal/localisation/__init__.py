"""
Localisation package

Locale resolution, ISO 15897/639 conversion and translation lookup.
"""

from portal.config import settings

from .localisation import Localisation, parse_accept_language
from .translator import trans

localisation = Localisation(settings.default_locale, settings.supported_locales)

__all__ = [
    "Localisation",
    "localisation",
    "parse_accept_language",
    "trans",
]
