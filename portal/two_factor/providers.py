"""
pyotp-backed two-factor provider

TOTP (RFC 6238) codes with one step of drift tolerance and replay
protection: once a code has been accepted for a secret, that time step and
every earlier one are rejected for the lifetime of the drift window.
"""

import hashlib
import logging
import secrets
import string
import threading
import time
from datetime import datetime, timezone

import pyotp
from pyotp.utils import strings_equal

from portal.constants import RECOVERY_CODE_LENGTH, TWO_FACTOR_WINDOW
from portal.two_factor.contracts import TwoFactorAuthentication

logger = logging.getLogger(__name__)

RECOVERY_CODE_ALPHABET = string.ascii_letters + string.digits

# 80 bits of base32; shorter secrets are rejected as invalid
MIN_SECRET_LENGTH = 16


class PyotpTwoFactorAuthentication(TwoFactorAuthentication):
    """Two-factor provider using pyotp for TOTP generation and checks."""

    def __init__(self, window: int = TWO_FACTOR_WINDOW, interval: int = 30, digits: int = 6):
        self.window = window
        self.interval = interval
        self.digits = digits
        # sha256(secret) -> (last accepted time step, expiry timestamp)
        self._last_used: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def generate_secret_key(self) -> str:
        return pyotp.random_base32()

    def generate_recovery_code(self) -> str:
        return "".join(secrets.choice(RECOVERY_CODE_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))

    def get_qr_code_url(self, company: str, email: str, secret: str) -> str:
        if not company or not email:
            raise ValueError("Both an issuer and an account email are required for a provisioning URI.")

        return self._totp(secret).provisioning_uri(name=email, issuer_name=company)

    def verify(self, secret: str, code: str) -> bool:
        if not secret or not code:
            return False

        code = str(code).strip()
        cache_key = hashlib.sha256(secret.encode()).hexdigest()

        try:
            totp = self._totp(secret)
            current_step = totp.timecode(datetime.now(timezone.utc))

            with self._lock:
                last_used = self._get_last_used_step(cache_key)

                for offset in range(-self.window, self.window + 1):
                    step = current_step + offset
                    if last_used is not None and step <= last_used:
                        continue
                    if strings_equal(code, totp.generate_otp(step)):
                        self._remember_step(cache_key, step)
                        return True
        except (ValueError, TypeError) as e:
            logger.debug(f"Rejecting code for malformed secret: {e}")
            return False

        return False

    def get_current_otp(self, secret: str) -> str | None:
        if not secret:
            return None

        try:
            return self._totp(secret).now()
        except (ValueError, TypeError):
            return None

    def _totp(self, secret: str) -> pyotp.TOTP:
        if len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"Secret must be at least {MIN_SECRET_LENGTH} characters.")
        return pyotp.TOTP(secret, digits=self.digits, interval=self.interval)

    def _get_last_used_step(self, cache_key: str) -> int | None:
        entry = self._last_used.get(cache_key)
        if entry is None:
            return None

        step, expires_at = entry
        if time.time() > expires_at:
            self._last_used.pop(cache_key, None)
            return None
        return step

    def _remember_step(self, cache_key: str, step: int) -> None:
        now = time.time()
        expired = [key for key, (_, expires_at) in self._last_used.items() if now > expires_at]
        for key in expired:
            del self._last_used[key]

        ttl = (2 * self.window + 1) * self.interval
        self._last_used[cache_key] = (step, now + ttl)
