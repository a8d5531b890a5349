"""
Two-Factor Authentication contract

The capability set every two-factor provider must offer. Verification
failures are normal outcomes: implementations return ``False`` or ``None``
for malformed input instead of raising.
"""

from abc import ABC, abstractmethod


class TwoFactorAuthentication(ABC):
    """Interface for TOTP secret generation and code verification."""

    @abstractmethod
    def generate_secret_key(self) -> str:
        """Return a new random shared secret."""

    @abstractmethod
    def generate_recovery_code(self) -> str:
        """Return a new random single-use recovery code."""

    @abstractmethod
    def get_qr_code_url(self, company: str, email: str, secret: str) -> str:
        """Return the provisioning key URI for authenticator apps."""

    @abstractmethod
    def verify(self, secret: str, code: str) -> bool:
        """Return True when ``code`` is valid for ``secret`` right now."""

    @abstractmethod
    def get_current_otp(self, secret: str) -> str | None:
        """Return the currently valid code, or None for an unusable secret."""
