"""
User Model

Accounts, their preferences and two-factor authentication state. The TOTP
secret and recovery codes are encrypted at rest.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, DateTime, Integer, String, delete
from sqlalchemy.sql import Delete

from portal.config import settings
from portal.database import Base
from portal.two_factor.concerns import TwoFactorAuthenticatable
from portal.utils.encryption import EncryptedJSON, EncryptedString


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(TwoFactorAuthenticatable, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    language = Column(String(16), nullable=False, default="en")
    hashed_password = Column(String(255), nullable=False)

    # Two-factor authentication
    two_factor_secret = Column(EncryptedString, nullable=True)
    two_factor_recovery_codes = Column(EncryptedJSON, nullable=True)
    two_factor_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    remember_token = Column(String(100), nullable=True)
    avatar_path = Column(String(255), nullable=True)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def avatar_url(self) -> str | None:
        if not self.avatar_path:
            return None
        return f"{settings.storage_url.rstrip('/')}/{self.avatar_path}"

    @property
    def has_verified_email(self) -> bool:
        return self.email_verified_at is not None

    @classmethod
    def prunable(cls, now: datetime | None = None) -> Delete:
        """Statement deleting accounts left unverified for a day."""
        cutoff = (now or utcnow()) - timedelta(days=1)
        return delete(cls).where(cls.email_verified_at.is_(None), cls.created_at <= cutoff)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, two_factor={self.has_two_factor_enabled})>"
