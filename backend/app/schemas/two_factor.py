"""Two-factor request/response schemas."""
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.two_factor import TwoFactorMethod

E164_PATTERN = r"^\+[1-9]\d{1,14}$"
BACKUP_CODE_LENGTH = 8


class _StrippedModel(BaseModel):
    """Strips surrounding whitespace from every string field."""

    model_config = {"str_strip_whitespace": True}


class TwoFactorStatusResponse(BaseModel):
    """Which second factors are active for the current user."""
    totp_enabled: bool
    sms_enabled: bool
    phone_verified: bool
    backup_codes_count: int


class TotpSetupResponse(BaseModel):
    """QR code and secret for authenticator enrollment."""
    qr_code: str  # PNG data URI
    secret: str  # For manual entry


class BackupCodesResponse(BaseModel):
    """Plaintext backup codes, shown exactly once."""
    backup_codes: List[str]
    message: str


class MessageResponse(BaseModel):
    message: str


class BackupCodeVerifyResponse(BaseModel):
    valid: bool
    remaining_codes: int


class TwoFactorVerifyResponse(BaseModel):
    valid: bool


class TotpTokenRequest(_StrippedModel):
    """6-digit code from the authenticator app."""
    token: str = Field(..., min_length=6, max_length=6)


class DisableTotpRequest(_StrippedModel):
    """6-digit TOTP code or 8-character backup code."""
    code: str = Field(..., min_length=1, max_length=8)

    @field_validator("code")
    @classmethod
    def normalise_backup_code(cls, v: str) -> str:
        return v.upper() if len(v) == BACKUP_CODE_LENGTH else v


class SetupSmsRequest(_StrippedModel):
    """Phone number in E.164 format, e.g. +1234567890."""
    phone_number: str = Field(..., pattern=E164_PATTERN)


class SmsCodeRequest(_StrippedModel):
    code: str = Field(..., min_length=6, max_length=6)


class BackupCodeRequest(_StrippedModel):
    code: str = Field(..., min_length=8, max_length=8)

    @field_validator("code")
    @classmethod
    def normalise_case(cls, v: str) -> str:
        """Backup codes are issued upper-case."""
        return v.upper()


class TwoFactorVerifyRequest(_StrippedModel):
    """Sign-in verification with a chosen method."""
    method: TwoFactorMethod
    code: str = Field(..., min_length=6, max_length=8)

    @model_validator(mode="after")
    def normalise_backup_code(self) -> "TwoFactorVerifyRequest":
        if self.method is TwoFactorMethod.BACKUP:
            self.code = self.code.upper()
        return self
