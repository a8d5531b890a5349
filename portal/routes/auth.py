"""
Authentication Routes

Registration, login/logout, the two-factor challenge, password reset, email
verification and password confirmation.
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth import (
    forget,
    forget_challenge,
    get_current_user,
    login,
    logout,
    mark_password_confirmed,
    pull_intended_url,
    remember,
    require_guest,
)
from portal.constants import LOGIN_ID_SESSION_KEY, LOGIN_REMEMBER_SESSION_KEY
from portal.database import get_db
from portal.exceptions import ValidationException
from portal.middleware.rate_limit import limiter
from portal.models.user import User
from portal.pages import flash, redirect, redirect_back, render
from portal.schemas import (
    ConfirmPasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TwoFactorLoginRequest,
)
from portal.services.auth_service import AuthService
from portal.services.email_verification_service import EmailVerificationService
from portal.services.password_reset_service import PasswordResetService
from portal.two_factor import TwoFactorAuthentication, get_two_factor_authentication

logger = logging.getLogger(__name__)

guest = APIRouter(tags=["Auth"], dependencies=[Depends(require_guest)])
router = APIRouter(tags=["Auth"])


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def ensure_confirmed(password: str, confirmation: str) -> None:
    if password != confirmation:
        raise ValidationException.with_messages(password=("validation.confirmed", {"attribute": "password"}))


async def get_challenged_user(request: Request, db: AsyncSession) -> User | None:
    user_id = request.session.get(LOGIN_ID_SESSION_KEY)
    if not user_id:
        return None
    return await db.get(User, user_id)


# ============== Registration & Login ==============


@guest.get("/register")
async def create_registration(request: Request):
    return render(request, "auth/register")


@guest.post("/register")
async def register(request: Request, body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    ensure_confirmed(body.password, body.password_confirmation)

    user = await AuthService(db).register_user(body.to_dto())
    login(request, user)
    return redirect("/dashboard")


@guest.get("/login")
async def create_session(request: Request):
    return render(request, "auth/login")


@guest.post("/login")
async def store_session(request: Request, body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await AuthService(db).authenticate(body.email, body.password, client_ip(request))

    if user.has_two_factor_enabled:
        request.session[LOGIN_ID_SESSION_KEY] = user.id
        request.session[LOGIN_REMEMBER_SESSION_KEY] = body.remember
        logger.info(f"User {user.id} challenged for a two-factor code")
        return redirect("/two-factor-challenge")

    login(request, user)
    response = redirect(pull_intended_url(request))
    if body.remember:
        await remember(db, user, response)
    return response


@router.post("/logout")
async def destroy_session(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    response = redirect("/")
    await forget(db, user, response)
    logout(request)
    return response


# ============== Two-Factor Challenge ==============


@guest.get("/two-factor-challenge")
async def create_two_factor_session(request: Request, db: AsyncSession = Depends(get_db)):
    if await get_challenged_user(request, db) is None:
        return redirect("/login")
    return render(request, "auth/two-factor")


@guest.post("/two-factor-challenge")
async def store_two_factor_session(
    request: Request,
    body: TwoFactorLoginRequest,
    db: AsyncSession = Depends(get_db),
    provider: TwoFactorAuthentication = Depends(get_two_factor_authentication),
):
    user = await get_challenged_user(request, db)
    if user is None:
        return redirect("/login")

    await AuthService(db).challenge(user, body.code, body.is_recovery, client_ip(request), provider)

    remember_me = bool(request.session.get(LOGIN_REMEMBER_SESSION_KEY, False))
    forget_challenge(request)
    login(request, user)
    response = redirect(pull_intended_url(request))
    if remember_me:
        await remember(db, user, response)
    return response


# ============== Password Reset ==============


@guest.get("/forgot-password")
async def create_reset_link(request: Request):
    return render(request, "auth/forgot-password")


@guest.post("/forgot-password")
@limiter.limit("6/minute")
async def store_reset_link(request: Request, body: ForgotPasswordRequest, db: AsyncSession = Depends(get_db)):
    await PasswordResetService(db).send_reset_link(body.email)
    flash(request, "reset-link-sent")
    return redirect_back(request, "/forgot-password")


@guest.get("/reset-password/{token}")
async def create_new_password(request: Request, token: str):
    return render(request, "auth/reset-password", {"email": request.query_params.get("email"), "token": token})


@guest.post("/reset-password")
async def store_new_password(request: Request, body: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    ensure_confirmed(body.password, body.password_confirmation)

    await PasswordResetService(db).reset_password(body.email, body.token, body.password)
    flash(request, "password-updated")
    return redirect("/login")


# ============== Email Verification ==============


@router.get("/verify-email")
async def show_verification_notice(request: Request, user: User = Depends(get_current_user)):
    if user.has_verified_email:
        return redirect(pull_intended_url(request))
    return render(request, "auth/verify-email")


@router.get("/verify-email/{user_id}/{digest}")
@limiter.limit("6/minute")
async def verify_email(
    request: Request,
    user_id: int,
    digest: str,
    signature: str | None = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await EmailVerificationService(db).verify(user, user_id, digest, signature)
    return redirect(pull_intended_url(request, "/dashboard?verified=1"))


@router.post("/email/verification-notification")
@limiter.limit("6/minute")
async def send_verification_notification(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if user.has_verified_email:
        return redirect(pull_intended_url(request))

    await EmailVerificationService(db).send_verification_notification(user)
    flash(request, "verification-link-sent")
    return redirect_back(request, "/verify-email")


# ============== Password Confirmation ==============


@router.get("/confirm-password")
async def show_confirm_password(request: Request, user: User = Depends(get_current_user)):
    return render(request, "auth/confirm-password")


@router.post("/confirm-password")
async def confirm_password(
    request: Request,
    body: ConfirmPasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AuthService(db).verify_password(user, body.password, message="auth.password")

    mark_password_confirmed(request)
    return redirect(pull_intended_url(request))
