"""
Two-factor behaviour shared by authenticatable models.

The mixin expects the model to define ``email``, ``two_factor_secret``,
``two_factor_recovery_codes`` and ``two_factor_confirmed_at``.
"""

import logging

import qrcode
from qrcode.image.svg import SvgPathImage

from portal.config import settings
from portal.two_factor import TwoFactorAuthentication, get_two_factor_authentication

logger = logging.getLogger(__name__)

QR_CODE_BOX_SIZE = 10


class TwoFactorAuthenticatable:
    """Mixin adding two-factor helpers to the User model."""

    @property
    def has_two_factor_enabled(self) -> bool:
        return bool(self.two_factor_secret) and self.two_factor_confirmed_at is not None

    def verify_two_factor_code(self, code: str, provider: TwoFactorAuthentication | None = None) -> bool:
        provider = provider or get_two_factor_authentication()
        return provider.verify(self.two_factor_secret or "", code)

    def verify_two_factor_recovery_code(self, code: str) -> bool:
        return code in (self.two_factor_recovery_codes or [])

    def replace_recovery_code(self, code: str, provider: TwoFactorAuthentication | None = None) -> None:
        """Swap a consumed recovery code for a freshly generated one."""
        provider = provider or get_two_factor_authentication()
        new_code = provider.generate_recovery_code()

        # Assign a new list so the ORM sees the change
        self.two_factor_recovery_codes = [
            new_code if existing == code else existing for existing in (self.two_factor_recovery_codes or [])
        ]
        logger.info(f"Recovery code replaced for user {self.id}")

    def get_two_factor_qr_code_url(self, provider: TwoFactorAuthentication | None = None) -> str:
        provider = provider or get_two_factor_authentication()
        return provider.get_qr_code_url(settings.app_name, self.email, self.two_factor_secret or "")

    def get_two_factor_qr_code_svg(self, provider: TwoFactorAuthentication | None = None) -> str:
        """Render the provisioning URI as an inline SVG element."""
        image = qrcode.make(
            self.get_two_factor_qr_code_url(provider),
            image_factory=SvgPathImage,
            box_size=QR_CODE_BOX_SIZE,
            border=0,
        )
        svg = image.to_string(encoding="unicode")

        # Inline SVG must not carry an XML declaration
        if svg.startswith("<?xml"):
            svg = svg.split("?>", 1)[1]
        return svg.strip()
