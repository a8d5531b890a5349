"""Validation rule checking a submitted code against the user's secret."""

from portal.exceptions import ValidationException
from portal.two_factor.contracts import TwoFactorAuthentication

TWO_FACTOR_CODE_MESSAGE = "validation.2fa_code"


class ValidCode:
    """Fails with ``validation.2fa_code`` unless the user verifies the code.

    The key is translated when the error response is rendered, so the
    message follows the request locale.
    """

    def __init__(self, user, provider: TwoFactorAuthentication | None = None):
        self.user = user
        self.provider = provider

    def passes(self, value) -> bool:
        if self.user is None:
            return False
        return self.user.verify_two_factor_code(str(value), self.provider)

    def __call__(self, attribute: str, value) -> None:
        if not self.passes(value):
            raise ValidationException.with_messages(**{attribute: TWO_FACTOR_CODE_MESSAGE})
