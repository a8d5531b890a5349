from pydantic import Field, field_validator

from portal.dtos import UpdateUserData, UpdateUserPreferencesData
from portal.localisation import localisation
from portal.schemas.auth import LowercaseEmail
from portal.schemas.base import CamelModel


class UpdateAccountRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: LowercaseEmail

    def to_dto(self) -> UpdateUserData:
        return UpdateUserData(name=self.name, email=self.email)


class UpdateAccountPasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8)
    password_confirmation: str


class UpdateAccountPreferencesRequest(CamelModel):
    language: str = Field(..., min_length=1)

    @field_validator("language")
    @classmethod
    def to_iso15897(cls, value: str) -> str:
        # The client sends BCP 47 tags such as "en-GB"
        return localisation.get_iso15897_locale(value)

    def to_dto(self) -> UpdateUserPreferencesData:
        return UpdateUserPreferencesData(language=self.language)


class DeleteAccountRequest(CamelModel):
    password: str = Field(..., min_length=1)
