from typing import Annotated, Optional

from pydantic import AfterValidator, EmailStr, Field

from portal.dtos import RegisterData
from portal.localisation import localisation
from portal.schemas.base import CamelModel


def lowercase_email(value: str) -> str:
    return value.strip().lower()


LowercaseEmail = Annotated[EmailStr, AfterValidator(lowercase_email)]


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: LowercaseEmail
    language: Optional[str] = None
    password: str = Field(..., min_length=8)
    password_confirmation: str

    def to_dto(self) -> RegisterData:
        return RegisterData(
            name=self.name,
            email=self.email,
            language=self.language or localisation.get_default_locale(),
            password=self.password,
        )


class LoginRequest(CamelModel):
    email: LowercaseEmail
    password: str = Field(..., min_length=1)
    remember: bool = False


class TwoFactorLoginRequest(CamelModel):
    code: Optional[str] = None
    is_recovery: bool = False


class TwoFactorCodeRequest(CamelModel):
    code: str = Field(..., min_length=1)


class ForgotPasswordRequest(CamelModel):
    email: LowercaseEmail


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    email: LowercaseEmail
    password: str = Field(..., min_length=8)
    password_confirmation: str


class ConfirmPasswordRequest(CamelModel):
    password: str = Field(..., min_length=1)
