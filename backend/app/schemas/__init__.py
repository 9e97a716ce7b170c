"""Pydantic schemas for request/response validation."""
from app.schemas.user import TokenData
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

__all__ = [
    # Auth
    "TokenData",
    # Two-factor
    "BackupCodeRequest",
    "BackupCodeVerifyResponse",
    "BackupCodesResponse",
    "DisableTotpRequest",
    "MessageResponse",
    "SetupSmsRequest",
    "SmsCodeRequest",
    "TotpSetupResponse",
    "TotpTokenRequest",
    "TwoFactorStatusResponse",
    "TwoFactorVerifyRequest",
    "TwoFactorVerifyResponse",
]
