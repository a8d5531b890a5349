"""
Authentication Constants

Throttling and two-factor configuration shared by the auth flows.
"""

import logging

from decouple import config

logger = logging.getLogger(__name__)

# Login and two-factor challenge throttling (per email + IP)
MAX_LOGIN_ATTEMPTS = config("MAX_LOGIN_ATTEMPTS", default=5, cast=int)
LOGIN_DECAY_SECONDS = config("LOGIN_DECAY_SECONDS", default=60, cast=int)

# Two-factor authentication
RECOVERY_CODE_COUNT = config("RECOVERY_CODE_COUNT", default=8, cast=int)
RECOVERY_CODE_LENGTH = config("RECOVERY_CODE_LENGTH", default=10, cast=int)
TWO_FACTOR_WINDOW = config("TWO_FACTOR_WINDOW", default=1, cast=int)

# Session keys used while a user is between password and 2FA challenge
LOGIN_ID_SESSION_KEY = "login.id"
LOGIN_REMEMBER_SESSION_KEY = "login.remember"
PASSWORD_CONFIRMED_SESSION_KEY = "auth.password_confirmed_at"
USER_SESSION_KEY = "user_id"
LOCALE_SESSION_KEY = "locale"

if RECOVERY_CODE_COUNT < 1:
    logger.warning("RECOVERY_CODE_COUNT is below 1; users will not receive recovery codes")
