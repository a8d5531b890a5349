"""
Two-Factor Authentication Service

Enables, confirms and disables TOTP two-factor authentication. Enabling
issues a new secret and recovery codes; the user must then confirm with a
code from their authenticator before 2FA is enforced at login.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from portal.constants import RECOVERY_CODE_COUNT
from portal.models.user import User
from portal.two_factor import TwoFactorAuthentication, get_two_factor_authentication

logger = logging.getLogger(__name__)


class TwoFactorService:
    """Service for managing two-factor authentication."""

    def __init__(self, db: AsyncSession, provider: TwoFactorAuthentication | None = None):
        self.db = db
        self.provider = provider or get_two_factor_authentication()

    async def enable(self, user: User) -> bool:
        """Issue a new secret and recovery codes.

        Returns False, leaving the user untouched, when the provider fails.
        """
        try:
            secret = self.provider.generate_secret_key()
            recovery_codes = [self.provider.generate_recovery_code() for _ in range(RECOVERY_CODE_COUNT)]
        except Exception:
            logger.exception(f"Two-factor provider failed while enabling 2FA for user {user.id}")
            return False

        user.two_factor_secret = secret
        user.two_factor_recovery_codes = recovery_codes
        user.two_factor_confirmed_at = None
        await self.db.commit()

        logger.info(f"2FA setup initiated for user {user.id}")
        return True

    async def confirm(self, user: User) -> None:
        user.two_factor_confirmed_at = datetime.now(timezone.utc)
        await self.db.commit()
        logger.info(f"2FA confirmed for user {user.id}")

    async def disable(self, user: User) -> None:
        user.two_factor_secret = None
        user.two_factor_recovery_codes = None
        user.two_factor_confirmed_at = None
        await self.db.commit()
        logger.info(f"2FA disabled for user {user.id}")
