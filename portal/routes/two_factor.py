"""
Two-Factor Authentication Routes

Enable, confirm and disable TOTP two-factor authentication, and read the
recovery codes.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth import require_password_confirmed
from portal.database import get_db
from portal.exceptions import TwoFactorSetupError
from portal.models.user import User
from portal.pages import redirect_back
from portal.schemas import RecoveryCodesResponse, TwoFactorCodeRequest, TwoFactorSetupResponse
from portal.services.two_factor_service import TwoFactorService
from portal.two_factor import TwoFactorAuthentication, get_two_factor_authentication
from portal.two_factor.rules import ValidCode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/two-factor", tags=["Two-Factor Authentication"])


@router.post("")
async def enable_two_factor(
    user: User = Depends(require_password_confirmed),
    db: AsyncSession = Depends(get_db),
    provider: TwoFactorAuthentication = Depends(get_two_factor_authentication),
) -> JSONResponse:
    """
    Start two-factor setup.

    Returns the QR code (inline SVG) and the secret for the authenticator
    app. 2FA is enforced only once confirmed with a valid code.
    """
    if not await TwoFactorService(db, provider).enable(user):
        raise TwoFactorSetupError()

    response = TwoFactorSetupResponse(
        qr_code=user.get_two_factor_qr_code_svg(provider),
        secret=user.two_factor_secret,
    )
    return JSONResponse(response.to_camel_dict())


@router.delete("")
async def disable_two_factor(
    request: Request,
    body: TwoFactorCodeRequest,
    user: User = Depends(require_password_confirmed),
    db: AsyncSession = Depends(get_db),
    provider: TwoFactorAuthentication = Depends(get_two_factor_authentication),
):
    ValidCode(user, provider)("code", body.code)

    await TwoFactorService(db, provider).disable(user)
    return redirect_back(request, "/account/security")


@router.post("/confirm")
async def confirm_two_factor(
    request: Request,
    body: TwoFactorCodeRequest,
    user: User = Depends(require_password_confirmed),
    db: AsyncSession = Depends(get_db),
    provider: TwoFactorAuthentication = Depends(get_two_factor_authentication),
):
    ValidCode(user, provider)("code", body.code)

    await TwoFactorService(db, provider).confirm(user)
    return redirect_back(request, "/account/security")


@router.get("/recovery-codes")
async def show_recovery_codes(user: User = Depends(require_password_confirmed)) -> JSONResponse:
    response = RecoveryCodesResponse(recovery_codes=user.two_factor_recovery_codes or [])
    return JSONResponse(response.to_camel_dict())
