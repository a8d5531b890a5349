"""
User Service

Account updates made by the user themselves: profile, password, language
preference, avatar and account deletion.
"""

import logging
import uuid
from io import BytesIO
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from portal.auth import hash_password
from portal.config import settings
from portal.dtos import UpdateUserAvatarData, UpdateUserData, UpdateUserPreferencesData
from portal.exceptions import AvatarProcessingError, ValidationException
from portal.models.user import User
from portal.services.email_verification_service import EmailVerificationService

logger = logging.getLogger(__name__)

AVATAR_SIZE = 128
AVATAR_DIR = "avatars"


def process_avatar(content: bytes) -> bytes:
    """Cover-crop an image to a square avatar and encode it as WebP."""
    try:
        with Image.open(BytesIO(content)) as img:
            img = ImageOps.exif_transpose(img)
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA")
            avatar = ImageOps.fit(img, (AVATAR_SIZE, AVATAR_SIZE), Image.Resampling.LANCZOS)

            output = BytesIO()
            avatar.save(output, format="WEBP", optimize=True, quality=85)
            return output.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise AvatarProcessingError(f"Unable to process avatar image: {e}") from e


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def update(self, user: User, data: UpdateUserData) -> User:
        """Update name and email. A changed email must be verified again."""
        if data.email != user.email:
            result = await self.db.execute(select(User.id).where(User.email == data.email, User.id != user.id))
            if result.first() is not None:
                raise ValidationException.with_messages(email="validation.unique_email")

        email_changed = data.email != user.email
        user.name = data.name
        user.email = data.email
        if email_changed:
            user.email_verified_at = None

        await self.db.commit()
        logger.info(f"Account updated for user {user.id}")

        if email_changed:
            await EmailVerificationService(self.db).send_verification_notification(user)
        return user

    async def update_password(self, user: User, password: str) -> None:
        user.hashed_password = hash_password(password)
        await self.db.commit()
        logger.info(f"Password changed for user {user.id}")

    async def update_preferences(self, user: User, data: UpdateUserPreferencesData) -> User:
        user.language = data.language
        await self.db.commit()
        return user

    async def update_avatar(self, user: User, data: UpdateUserAvatarData) -> User:
        """Store a new avatar, or remove it when ``data.avatar`` is None.

        Raises:
            AvatarProcessingError: if the upload is not a readable image
        """
        storage = Path(settings.storage_path)
        new_path = None

        if data.avatar is not None:
            webp = process_avatar(await data.avatar.read())
            new_path = f"{AVATAR_DIR}/{uuid.uuid4().hex}.webp"
            target = storage / new_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(webp)

        previous_path = user.avatar_path
        user.avatar_path = new_path
        await self.db.commit()

        if previous_path:
            (storage / previous_path).unlink(missing_ok=True)

        logger.info(f"Avatar {'updated' if new_path else 'removed'} for user {user.id}")
        return user

    async def delete(self, user: User) -> bool:
        avatar_path = user.avatar_path
        await self.db.delete(user)
        await self.db.commit()

        if avatar_path:
            (Path(settings.storage_path) / avatar_path).unlink(missing_ok=True)

        logger.info(f"Deleted user {user.id}")
        return True
