"""Persistence adapters."""
from app.repositories.two_factor import TwoFactorRepository
from app.repositories.user import UserRepository

__all__ = [
    "TwoFactorRepository",
    "UserRepository",
]
