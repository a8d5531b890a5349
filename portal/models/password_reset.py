"""
Password Reset Model

One outstanding reset token per email address. Only a hash of the token
is stored.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, DateTime, String

from portal.database import Base


class PasswordResetToken(Base):
    """Model for password reset tokens"""

    __tablename__ = "password_reset_tokens"

    email = Column(String(255), primary_key=True)
    token = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def is_expired(self, expire_minutes: int) -> bool:
        """Check if token is older than ``expire_minutes``"""
        created_at = self.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return datetime.now(timezone.utc) > created_at + timedelta(minutes=expire_minutes)
