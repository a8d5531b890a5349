"""
Two-factor authentication package.

Exposes the provider contract, the default pyotp provider and the FastAPI
dependency returning the application's provider instance.
"""

from functools import lru_cache

from .contracts import TwoFactorAuthentication
from .providers import PyotpTwoFactorAuthentication


@lru_cache
def get_two_factor_authentication() -> TwoFactorAuthentication:
    """Return the process-wide two-factor provider."""
    return PyotpTwoFactorAuthentication()


__all__ = [
    "PyotpTwoFactorAuthentication",
    "TwoFactorAuthentication",
    "get_two_factor_authentication",
]
