"""Validation rule accepting only supported locales."""

from portal.exceptions import ValidationException
from portal.localisation import localisation


class SupportedLocale:
    """Fails with ``validation.supported_locale`` for unknown locales."""

    def __call__(self, attribute: str, value: str) -> None:
        if not localisation.is_supported_locale(value):
            raise ValidationException.with_messages(**{attribute: "validation.supported_locale"})
