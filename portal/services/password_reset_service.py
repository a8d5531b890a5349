"""
Password Reset Service

Handles password reset token generation, validation, and password updates.
One token per email address; only its SHA-256 digest is stored.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timezone
from urllib.parse import urlencode

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from portal.auth import cycle_remember_token, hash_password
from portal.config import settings
from portal.enums import Queue
from portal.exceptions import ValidationException
from portal.models.password_reset import PasswordResetToken
from portal.models.user import User
from portal.scheduler import dispatch
from portal.services.email_service import email_service

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class PasswordResetService:
    """Service for handling password reset operations"""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def generate_reset_token() -> str:
        """Generate a secure random token"""
        return secrets.token_urlsafe(32)

    @staticmethod
    def create_reset_url(token: str, email: str) -> str:
        return f"{settings.app_url.rstrip('/')}/reset-password/{token}?{urlencode({'email': email})}"

    async def _get_user(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def send_reset_link(self, email: str) -> str | None:
        """Create a token and email the link. Unknown addresses are ignored
        so the response never reveals whether an account exists."""
        user = await self._get_user(email)
        if user is None:
            logger.info("Password reset requested for unknown email")
            return None

        token = self.generate_reset_token()
        record = await self.db.get(PasswordResetToken, email)
        if record is None:
            record = PasswordResetToken(email=email)
            self.db.add(record)
        record.token = hash_token(token)
        record.created_at = datetime.now(timezone.utc)
        await self.db.commit()

        await dispatch(
            email_service.send_password_reset_email,
            user.email,
            user.name,
            self.create_reset_url(token, user.email),
            user.language,
            queue=Queue.NOTIFICATIONS,
        )
        logger.info(f"Password reset link queued for user {user.id}")
        return token

    async def reset_password(self, email: str, token: str, new_password: str) -> User:
        """Reset a user's password using a valid token.

        Raises:
            ValidationException: on ``email`` when the token is unknown, expired
            or does not match.
        """
        user = await self._get_user(email)
        record = await self.db.get(PasswordResetToken, email)

        if (
            user is None
            or record is None
            or record.is_expired(settings.password_reset_expire_minutes)
            or not hmac.compare_digest(record.token, hash_token(token))
        ):
            logger.warning("Rejected password reset with an invalid token")
            raise ValidationException.with_messages(email="passwords.token")

        user.hashed_password = hash_password(new_password)
        cycle_remember_token(user)
        await self.db.delete(record)
        await self.db.commit()

        logger.info(f"Password reset for user {user.id}")
        return user
