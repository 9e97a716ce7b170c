"""Database models."""
from app.models.user import User
from app.models.two_factor import TwoFactorAuth, TwoFactorMethod

__all__ = [
    "User",
    "TwoFactorAuth",
    "TwoFactorMethod",
]
