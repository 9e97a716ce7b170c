"""Two-Factor Authentication API routes."""
from fastapi import APIRouter, Depends, Request, status

from app.api.deps import get_current_user_id, get_two_factor_service
from app.middleware.rate_limit import RATE_LIMITS, limiter
from app.schemas.two_factor import (
    BackupCodeRequest,
    BackupCodeVerifyResponse,
    BackupCodesResponse,
    DisableTotpRequest,
    MessageResponse,
    SetupSmsRequest,
    SmsCodeRequest,
    TotpSetupResponse,
    TotpTokenRequest,
    TwoFactorStatusResponse,
    TwoFactorVerifyRequest,
    TwoFactorVerifyResponse,
)
from app.services.two_factor import TwoFactorService

router = APIRouter()


@router.get("/status", response_model=TwoFactorStatusResponse)
async def get_status(
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Get 2FA status for the current user."""
    return await service.get_status(user_id)


# ==================== TOTP (Authenticator App) ====================

@router.post("/totp/setup", response_model=TotpSetupResponse)
@limiter.limit(RATE_LIMITS["setup_totp"])
async def setup_totp(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """
    Start TOTP enrollment.
    Returns a QR code (data URI) and the secret for manual entry.
    """
    return await service.setup_totp(user_id)


@router.post("/totp/verify", response_model=BackupCodesResponse)
@limiter.limit(RATE_LIMITS["verify_totp"])
async def verify_and_enable_totp(
    request: Request,
    body: TotpTokenRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """
    Verify a token from the authenticator app and enable TOTP.
    Returns backup codes; they cannot be retrieved again.
    """
    return await service.verify_and_enable_totp(user_id, body.token)


@router.delete("/totp", response_model=MessageResponse, status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["disable_totp"])
async def disable_totp(
    request: Request,
    body: DisableTotpRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Disable TOTP with a valid TOTP token or backup code."""
    return await service.disable_totp(user_id, body.code)


# ==================== SMS ====================

@router.post("/sms/setup", response_model=MessageResponse)
@limiter.limit(RATE_LIMITS["setup_sms"])
async def setup_sms(
    request: Request,
    body: SetupSmsRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Send a verification code to an E.164 phone number."""
    return await service.setup_sms(user_id, body.phone_number)


@router.post("/sms/verify", response_model=MessageResponse)
@limiter.limit(RATE_LIMITS["verify_sms"])
async def verify_and_enable_sms(
    request: Request,
    body: SmsCodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Verify the SMS code sent during setup and enable SMS 2FA."""
    return await service.verify_and_enable_sms(user_id, body.code)


@router.delete("/sms", response_model=MessageResponse, status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["disable_sms"])
async def disable_sms(
    request: Request,
    body: SmsCodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """
    Disable SMS 2FA.
    Without a pending code, one is sent and the request fails; resubmit with it.
    """
    return await service.disable_sms(user_id, body.code)


@router.post("/sms/resend", response_model=MessageResponse)
@limiter.limit(RATE_LIMITS["resend_sms"])
async def resend_sms_code(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Resend the SMS verification code to the phone number on file."""
    return await service.resend_sms_code(user_id)


# ==================== Backup Codes ====================

@router.post("/backup-codes/verify", response_model=BackupCodeVerifyResponse)
@limiter.limit(RATE_LIMITS["verify_backup"])
async def verify_backup_code(
    request: Request,
    body: BackupCodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Use a backup code. Each code works once."""
    return await service.verify_backup_code(user_id, body.code)


@router.post("/backup-codes/regenerate", response_model=BackupCodesResponse)
@limiter.limit(RATE_LIMITS["regenerate_backup"])
async def regenerate_backup_codes(
    request: Request,
    body: TotpTokenRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Replace all backup codes. Requires a valid TOTP token."""
    return await service.regenerate_backup_codes(user_id, body.token)


# ==================== Sign-in ====================

@router.post("/challenge", response_model=MessageResponse)
@limiter.limit(RATE_LIMITS["challenge"])
async def send_2fa_code(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Send the sign-in SMS code to a user with SMS 2FA enabled."""
    await service.send_2fa_code(user_id)
    return {"message": "SMS code sent"}


@router.post("/verify", response_model=TwoFactorVerifyResponse)
@limiter.limit(RATE_LIMITS["verify_2fa"])
async def verify_2fa(
    request: Request,
    body: TwoFactorVerifyRequest,
    user_id: str = Depends(get_current_user_id),
    service: TwoFactorService = Depends(get_two_factor_service),
):
    """Check a sign-in code for the chosen method."""
    return {"valid": await service.verify_2fa(user_id, body.code, body.method)}
