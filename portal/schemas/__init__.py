from .account import (
    DeleteAccountRequest,
    UpdateAccountPasswordRequest,
    UpdateAccountPreferencesRequest,
    UpdateAccountRequest,
)
from .auth import (
    ConfirmPasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TwoFactorCodeRequest,
    TwoFactorLoginRequest,
)
from .user import Paginated, PaginationLinks, PaginationMeta, RecoveryCodesResponse, TwoFactorSetupResponse, UserResource

__all__ = [
    "ConfirmPasswordRequest",
    "DeleteAccountRequest",
    "ForgotPasswordRequest",
    "LoginRequest",
    "Paginated",
    "PaginationLinks",
    "PaginationMeta",
    "RecoveryCodesResponse",
    "RegisterRequest",
    "ResetPasswordRequest",
    "TwoFactorCodeRequest",
    "TwoFactorLoginRequest",
    "TwoFactorSetupResponse",
    "UpdateAccountPasswordRequest",
    "UpdateAccountPreferencesRequest",
    "UpdateAccountRequest",
    "UserResource",
]
