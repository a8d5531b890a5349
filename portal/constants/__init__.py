"""Constants package for the portal."""

from .auth import (
    LOCALE_SESSION_KEY,
    LOGIN_DECAY_SECONDS,
    LOGIN_ID_SESSION_KEY,
    LOGIN_REMEMBER_SESSION_KEY,
    MAX_LOGIN_ATTEMPTS,
    PASSWORD_CONFIRMED_SESSION_KEY,
    RECOVERY_CODE_COUNT,
    RECOVERY_CODE_LENGTH,
    TWO_FACTOR_WINDOW,
    USER_SESSION_KEY,
)

__all__ = [
    "LOCALE_SESSION_KEY",
    "LOGIN_DECAY_SECONDS",
    "LOGIN_ID_SESSION_KEY",
    "LOGIN_REMEMBER_SESSION_KEY",
    "MAX_LOGIN_ATTEMPTS",
    "PASSWORD_CONFIRMED_SESSION_KEY",
    "RECOVERY_CODE_COUNT",
    "RECOVERY_CODE_LENGTH",
    "TWO_FACTOR_WINDOW",
    "USER_SESSION_KEY",
]
