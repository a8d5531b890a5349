from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from portal.localisation import localisation
from portal.schemas.base import CamelModel
from portal.utils.strings import initials


class UserResource(CamelModel):
    id: int
    name: str
    email: str
    email_verified_at: Optional[datetime] = None
    two_factor_confirmed_at: Optional[datetime] = None
    language: str
    avatar_url: Optional[str] = None
    initials: str = ""

    @classmethod
    def from_user(cls, user) -> "UserResource":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            email_verified_at=user.email_verified_at,
            two_factor_confirmed_at=user.two_factor_confirmed_at,
            language=localisation.get_iso639_locale(user.language),
            avatar_url=user.avatar_url,
            initials=initials(user.name),
        )


class TwoFactorSetupResponse(CamelModel):
    qr_code: str
    secret: str


class RecoveryCodesResponse(CamelModel):
    recovery_codes: list[str]


class PaginationLinks(CamelModel):
    first: str
    last: str
    prev: Optional[str] = None
    next: Optional[str] = None


class PaginationMeta(CamelModel):
    current_page: int
    from_: Optional[int] = Field(None, alias="from")
    last_page: int
    path: str
    per_page: int
    to: Optional[int] = None
    total: int


class Paginated(CamelModel):
    data: list[dict[str, Any]]
    links: PaginationLinks
    meta: PaginationMeta
