import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Request
from itsdangerous import BadSignature, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from portal.config import settings
from portal.constants import (
    LOCALE_SESSION_KEY,
    LOGIN_ID_SESSION_KEY,
    LOGIN_REMEMBER_SESSION_KEY,
    PASSWORD_CONFIRMED_SESSION_KEY,
    USER_SESSION_KEY,
)
from portal.database import get_db
from portal.exceptions import AuthenticationError, PasswordConfirmationRequired, RedirectRequired
from portal.models.user import User

# Initialize logging
logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

INTENDED_URL_SESSION_KEY = "url.intended"

REMEMBER_LIFETIME_SECONDS = settings.remember_lifetime_days * 24 * 60 * 60

# Signs the remember-me cookie: [user id, remember_token]
remember_serializer = URLSafeTimedSerializer(settings.secret_key, salt="remember-me")


# Function to hash a password
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


# Function to verify a password
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def wants_json(request: Request) -> bool:
    """True for XHR/API callers that cannot follow an HTML redirect."""
    if request.headers.get("X-Inertia") == "true":
        return False
    return "application/json" in request.headers.get("Accept", "")


def login(request: Request, user: User) -> None:
    """Start an authenticated session for ``user``.

    The cookie session is cleared first so nothing from the guest session
    (e.g. a pending two-factor challenge) survives the login.
    """
    intended = request.session.get(INTENDED_URL_SESSION_KEY)
    request.session.clear()
    request.session[USER_SESSION_KEY] = user.id
    request.session[LOCALE_SESSION_KEY] = user.language
    if intended:
        request.session[INTENDED_URL_SESSION_KEY] = intended
    request.state.user = user
    logger.info(f"User {user.id} logged in")


def logout(request: Request) -> None:
    user_id = request.session.get(USER_SESSION_KEY)
    request.session.clear()
    request.state.user = None
    if user_id:
        logger.info(f"User {user_id} logged out")


def cycle_remember_token(user: User) -> None:
    user.remember_token = secrets.token_urlsafe(45)[:60]


async def remember(db: AsyncSession, user: User, response: Response) -> None:
    """Attach the long-lived remember-me cookie that outlives the session cookie."""
    if not user.remember_token:
        cycle_remember_token(user)
        await db.commit()

    response.set_cookie(
        key=settings.remember_cookie,
        value=remember_serializer.dumps([user.id, user.remember_token]),
        max_age=REMEMBER_LIFETIME_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.https_only,
    )


async def forget(db: AsyncSession, user: User, response: Response) -> None:
    """Drop the remember-me cookie and invalidate any copies of it."""
    if user.remember_token:
        cycle_remember_token(user)
        await db.commit()
    response.delete_cookie(settings.remember_cookie)


async def user_from_remember_cookie(request: Request, db: AsyncSession) -> Optional[User]:
    cookie = request.cookies.get(settings.remember_cookie)
    if not cookie:
        return None

    try:
        user_id, token = remember_serializer.loads(cookie, max_age=REMEMBER_LIFETIME_SECONDS)
    except (BadSignature, ValueError, TypeError):
        logger.warning("Ignoring a malformed or expired remember-me cookie")
        return None

    user = await db.get(User, user_id)
    if user is None or not user.remember_token or not secrets.compare_digest(str(token), user.remember_token):
        logger.warning(f"Rejected a stale remember-me cookie for user {user_id}")
        return None

    login(request, user)
    return user


def pull_intended_url(request: Request, default: str = "/dashboard") -> str:
    return request.session.pop(INTENDED_URL_SESSION_KEY, None) or default


def mark_password_confirmed(request: Request) -> None:
    request.session[PASSWORD_CONFIRMED_SESSION_KEY] = int(datetime.now(timezone.utc).timestamp())


def password_recently_confirmed(request: Request) -> bool:
    confirmed_at = request.session.get(PASSWORD_CONFIRMED_SESSION_KEY)
    if not confirmed_at:
        return False
    return datetime.now(timezone.utc).timestamp() - confirmed_at < settings.password_timeout


def remember_intended_url(request: Request) -> None:
    if request.method != "GET":
        return
    intended = request.url.path
    if request.url.query:
        intended = f"{intended}?{request.url.query}"
    request.session[INTENDED_URL_SESSION_KEY] = intended


def forget_challenge(request: Request) -> None:
    request.session.pop(LOGIN_ID_SESSION_KEY, None)
    request.session.pop(LOGIN_REMEMBER_SESSION_KEY, None)


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Return the logged-in user, or None for guests."""
    cached = getattr(request.state, "user", None)
    if cached is not None:
        return cached

    user_id = request.session.get(USER_SESSION_KEY)
    if not user_id:
        return await user_from_remember_cookie(request, db)

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"Session references missing user {user_id}; clearing session")
        request.session.clear()
        return None

    request.state.user = user
    return user


async def get_current_user(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
) -> User:
    if user is not None:
        return user

    if wants_json(request):
        raise AuthenticationError()

    remember_intended_url(request)
    raise RedirectRequired("/login")


async def get_verified_user(
    request: Request,
    user: User = Depends(get_current_user),
) -> User:
    if not user.has_verified_email:
        if wants_json(request):
            raise AuthenticationError("Your email address is not verified.")
        raise RedirectRequired("/verify-email")
    return user


async def require_guest(user: Optional[User] = Depends(get_optional_user)) -> None:
    if user is not None:
        raise RedirectRequired("/dashboard")


async def require_password_confirmed(
    request: Request,
    user: User = Depends(get_current_user),
) -> User:
    """Ask for the password again once ``settings.password_timeout`` has passed."""
    if password_recently_confirmed(request):
        return user

    if wants_json(request):
        raise PasswordConfirmationRequired()

    remember_intended_url(request)
    raise RedirectRequired("/confirm-password")
