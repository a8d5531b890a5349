"""
Email Verification Service

Verification links carry a signed, expiring token (python-jose) binding the
user id to a hash of the address the link was sent to.
"""

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import settings
from portal.enums import Queue
from portal.exceptions import InvalidSignatureError
from portal.models.user import User
from portal.scheduler import dispatch
from portal.services.email_service import email_service

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_PURPOSE = "verify-email"


def email_hash(email: str) -> str:
    return hashlib.sha1(email.encode()).hexdigest()


class EmailVerificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def create_verification_url(user: User) -> str:
        digest = email_hash(user.email)
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.email_verification_expire_minutes)
        signature = jwt.encode(
            {"sub": str(user.id), "hash": digest, "purpose": TOKEN_PURPOSE, "exp": expire},
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        query = urlencode({"signature": signature})
        return f"{settings.app_url.rstrip('/')}/verify-email/{user.id}/{digest}?{query}"

    async def send_verification_notification(self, user: User) -> None:
        await dispatch(
            email_service.send_verification_email,
            user.email,
            user.name,
            self.create_verification_url(user),
            user.language,
            queue=Queue.NOTIFICATIONS,
        )
        logger.info(f"Verification email queued for user {user.id}")

    async def verify(self, user: User, user_id: int, digest: str, signature: str | None) -> bool:
        """Mark the email verified. Returns False when it already was."""
        if not signature:
            raise InvalidSignatureError()

        try:
            payload = jwt.decode(signature, settings.secret_key, algorithms=[ALGORITHM])
        except JWTError as e:
            logger.warning(f"Rejected verification link for user {user.id}: {e}")
            raise InvalidSignatureError() from e

        if (
            payload.get("purpose") != TOKEN_PURPOSE
            or payload.get("sub") != str(user_id)
            or payload.get("hash") != digest
        ):
            raise InvalidSignatureError()

        # The link must belong to the logged-in user and their current address
        if user_id != user.id or not hmac.compare_digest(digest, email_hash(user.email)):
            raise InvalidSignatureError("This verification link does not belong to you.")

        if user.has_verified_email:
            return False

        user.email_verified_at = datetime.now(timezone.utc)
        await self.db.commit()
        logger.info(f"Email verified for user {user.id}")
        return True
