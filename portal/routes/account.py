"""
Account Routes

Profile, avatar, preferences and security pages for the signed-in user,
plus password changes and account deletion.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth import get_current_user, get_verified_user, logout
from portal.config import settings
from portal.constants import LOCALE_SESSION_KEY
from portal.database import get_db
from portal.dtos import UpdateUserAvatarData
from portal.exceptions import AvatarProcessingError, ValidationException
from portal.localisation.rules import SupportedLocale
from portal.models.user import User
from portal.pages import redirect, redirect_back, render
from portal.routes.auth import ensure_confirmed
from portal.schemas import (
    DeleteAccountRequest,
    UpdateAccountPasswordRequest,
    UpdateAccountPreferencesRequest,
    UpdateAccountRequest,
)
from portal.services.auth_service import AuthService
from portal.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/account", tags=["Account"])

MAX_AVATAR_KILOBYTES = 1024 * 5


@router.get("")
async def edit_account(request: Request, user: User = Depends(get_verified_user)):
    return render(request, "account/general")


@router.put("")
async def update_account(
    request: Request,
    body: UpdateAccountRequest,
    user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).update(user, body.to_dto())
    return redirect_back(request, "/account")


@router.delete("")
async def destroy_account(
    request: Request,
    body: DeleteAccountRequest,
    user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    await AuthService(db).verify_password(user, body.password)

    logout(request)
    await UserService(db).delete(user)
    response = redirect("/")
    response.delete_cookie(settings.remember_cookie)
    return response


@router.put("/password")
async def update_password(
    request: Request,
    body: UpdateAccountPasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AuthService(db).verify_password(user, body.current_password, field="current_password")
    ensure_confirmed(body.password, body.password_confirmation)

    await UserService(db).update_password(user, body.password)
    return redirect_back(request, "/account/security")


@router.put("/avatar")
async def update_avatar(
    request: Request,
    avatar: Optional[UploadFile] = File(None),
    user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    if avatar is not None:
        if not (avatar.content_type or "").startswith("image/"):
            raise ValidationException.with_messages(avatar=("validation.image", {"attribute": "avatar"}))
        if avatar.size is not None and avatar.size > MAX_AVATAR_KILOBYTES * 1024:
            raise ValidationException.with_messages(
                avatar=("validation.file_max", {"attribute": "avatar", "max": MAX_AVATAR_KILOBYTES})
            )

    try:
        await UserService(db).update_avatar(user, UpdateUserAvatarData(avatar=avatar))
    except AvatarProcessingError as e:
        logger.exception(f"Avatar update failed for user {user.id}")
        raise ValidationException.with_messages(avatar="validation.account_avatar") from e

    return redirect_back(request, "/account")


@router.delete("/avatar")
async def destroy_avatar(
    request: Request,
    user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).update_avatar(user, UpdateUserAvatarData(avatar=None))
    return redirect_back(request, "/account")


@router.get("/preferences")
async def edit_preferences(request: Request, user: User = Depends(get_verified_user)):
    return render(request, "account/preferences")


@router.put("/preferences")
async def update_preferences(
    request: Request,
    body: UpdateAccountPreferencesRequest,
    user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db),
):
    SupportedLocale()("language", body.language)

    await UserService(db).update_preferences(user, body.to_dto())
    request.session[LOCALE_SESSION_KEY] = user.language
    return redirect_back(request, "/account/preferences")


@router.get("/security")
async def edit_security(request: Request, user: User = Depends(get_verified_user)):
    return render(request, "account/security")
