"""
Mock utilities for creating test data

Helpers for creating users, signing in through the login form and reading
the signed session cookie.
"""

import base64
import json
from datetime import datetime, timezone

import itsdangerous
import pyotp

from portal.auth import hash_password
from portal.config import settings
from portal.models.user import User

PASSWORD = "password123"

INERTIA = {"X-Inertia": "true"}


async def create_user(
    db_session,
    name: str = "Test User",
    email: str = "testuser@example.com",
    language: str = "en",
    verified: bool = True,
    **extra,
) -> User:
    """Create a test user with the shared test password"""
    user = User(
        name=name,
        email=email,
        language=language,
        hashed_password=hash_password(PASSWORD),
        email_verified_at=datetime.now(timezone.utc) if verified else None,
        **extra,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def login_as(client, user: User, password: str = PASSWORD):
    """Sign in through the login form, leaving the session cookie on the client."""
    response = await client.post("/login", json={"email": user.email, "password": password})
    assert response.status_code == 303
    return response


def read_session(client) -> dict:
    """Decode the signed session cookie the app last set on ``client``."""
    cookie = client.cookies.get(settings.session_cookie)
    if not cookie:
        return {}
    signer = itsdangerous.TimestampSigner(str(settings.secret_key))
    return json.loads(base64.b64decode(signer.unsign(cookie.encode())))


def current_code(user: User) -> str:
    return pyotp.TOTP(user.two_factor_secret).now()


async def login_with_recovery_code(client, user: User):
    """Pass the password and two-factor challenge without spending a TOTP step."""
    await login_as(client, user)
    response = await client.post(
        "/two-factor-challenge",
        json={"code": user.two_factor_recovery_codes[0], "is_recovery": True},
    )
    assert response.status_code == 303
    return response


async def confirm_password(client, password: str = PASSWORD):
    """Confirm the password so password-confirmed routes can be reached."""
    response = await client.post("/confirm-password", json={"password": password})
    assert response.status_code == 303
    return response
