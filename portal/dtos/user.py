from dataclasses import dataclass

from fastapi import UploadFile


@dataclass(frozen=True)
class UpdateUserData:
    name: str
    email: str


@dataclass(frozen=True)
class UpdateUserAvatarData:
    # None removes the current avatar
    avatar: UploadFile | None


@dataclass(frozen=True)
class UpdateUserPreferencesData:
    language: str
