"""
Encrypted column types

Fernet-backed SQLAlchemy types for values that must not be stored in
plain text (two-factor secrets and recovery codes).
"""

import base64
import hashlib
import json
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

from portal.config import settings

logger = logging.getLogger(__name__)


@lru_cache
def get_fernet() -> Fernet:
    """Return the Fernet instance for the configured key.

    When no ``ENCRYPTION_KEY`` is configured the key is derived from
    ``SECRET_KEY`` so rotating the secret key also rotates encryption.
    """
    key = settings.encryption_key
    if not key:
        digest = hashlib.sha256(settings.secret_key.encode()).digest()
        key = base64.urlsafe_b64encode(digest).decode()
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt(value: str) -> str:
    return get_fernet().encrypt(value.encode()).decode()


def decrypt(token: str) -> str:
    return get_fernet().decrypt(token.encode()).decode()


class EncryptedString(TypeDecorator):
    """Text column transparently encrypted with Fernet."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return encrypt(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        try:
            return decrypt(value)
        except InvalidToken:
            logger.error("Unable to decrypt column value; was the encryption key rotated?")
            raise


class EncryptedJSON(TypeDecorator):
    """JSON document stored as an encrypted text column."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return encrypt(json.dumps(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        try:
            return json.loads(decrypt(value))
        except InvalidToken:
            logger.error("Unable to decrypt column value; was the encryption key rotated?")
            raise
