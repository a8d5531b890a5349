"""Immutable data carried from validated requests into services."""

from .auth import RegisterData
from .user import UpdateUserAvatarData, UpdateUserData, UpdateUserPreferencesData

__all__ = [
    "RegisterData",
    "UpdateUserAvatarData",
    "UpdateUserData",
    "UpdateUserPreferencesData",
]
