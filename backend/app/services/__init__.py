"""Business logic services."""
from app.services.auth import AuthService
from app.services.hashing import HashingService
from app.services.sms import LoggingSmsSender, SmsSender, SnsSmsSender, create_sms_sender
from app.services.totp import TotpService
from app.services.two_factor import TwoFactorMethod, TwoFactorService

__all__ = [
    "AuthService",
    "HashingService",
    "LoggingSmsSender",
    "SmsSender",
    "SnsSmsSender",
    "create_sms_sender",
    "TotpService",
    "TwoFactorMethod",
    "TwoFactorService",
]
