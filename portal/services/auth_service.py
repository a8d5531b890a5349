"""
Authentication Service

Registration, password login and the two-factor challenge. Failed password
and challenge attempts are throttled per email and client address.
"""

import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from portal.auth import hash_password, verify_password
from portal.dtos import RegisterData
from portal.exceptions import ValidationException
from portal.localisation import localisation
from portal.middleware.rate_limit import login_throttle, throttle_key
from portal.models.user import User
from portal.services.email_verification_service import EmailVerificationService
from portal.two_factor import TwoFactorAuthentication

logger = logging.getLogger(__name__)


def get_language(locale: str) -> str:
    """Best supported language for ``locale``: fr-CA -> fr_CA -> fr -> default."""
    candidates = [
        localisation.get_iso15897_locale(locale),
        localisation.get_language_from_locale(locale),
    ]
    for candidate in candidates:
        if localisation.is_supported_locale(candidate):
            return candidate
    return localisation.get_default_locale()


def ensure_is_not_rate_limited(key: str, field: str) -> None:
    if login_throttle.too_many_attempts(key):
        seconds = login_throttle.available_in(key)
        logger.warning(f"Throttled authentication attempts for {key}")
        raise ValidationException.with_messages(
            **{field: ("auth.throttle", {"seconds": seconds, "minutes": math.ceil(seconds / 60)})}
        )


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def register_user(self, data: RegisterData) -> User:
        if await self.get_user_by_email(data.email):
            raise ValidationException.with_messages(email="validation.unique_email")

        user = User(
            name=data.name,
            email=data.email,
            language=get_language(data.language),
            hashed_password=hash_password(data.password),
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"Registered user {user.id}")

        await EmailVerificationService(self.db).send_verification_notification(user)
        return user

    async def authenticate(self, email: str, password: str, ip: str | None) -> User:
        """Validate credentials, raising ``auth.failed``/``auth.throttle`` on ``email``."""
        key = throttle_key("login_attempt", email, ip)
        ensure_is_not_rate_limited(key, "email")

        user = await self.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            login_throttle.hit(key)
            logger.warning(f"Failed login attempt from {ip}")
            raise ValidationException.with_messages(email="auth.failed")

        login_throttle.clear(key)
        return user

    async def verify_password(
        self, user: User, password: str, field: str = "password", message: str = "validation.current_password"
    ) -> None:
        """Check the user's current password, failing on ``field``."""
        if not verify_password(password, user.hashed_password):
            raise ValidationException.with_messages(**{field: message})

    async def challenge(
        self,
        user: User,
        code: str | None,
        is_recovery: bool,
        ip: str | None,
        provider: TwoFactorAuthentication | None = None,
    ) -> None:
        """Check a two-factor challenge answer for ``user``.

        A used recovery code is replaced so it cannot be used twice.
        """
        key = throttle_key("two_factor_login_attempt", user.email, ip)
        ensure_is_not_rate_limited(key, "code")

        if is_recovery:
            if not code or not user.verify_two_factor_recovery_code(code):
                login_throttle.hit(key)
                logger.warning(f"Invalid recovery code for user {user.id}")
                raise ValidationException.with_messages(code="validation.invalid_recovery_code")

            user.replace_recovery_code(code, provider)
            await self.db.commit()
        elif not code or not user.verify_two_factor_code(code, provider):
            login_throttle.hit(key)
            logger.warning(f"Invalid two-factor code for user {user.id}")
            raise ValidationException.with_messages(code="validation.invalid_code")

        login_throttle.clear(key)
