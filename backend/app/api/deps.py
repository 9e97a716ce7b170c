"""API dependencies for authentication and service wiring."""
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.config import settings
from app.database import get_db
from app.repositories import TwoFactorRepository, UserRepository
from app.services.auth import AuthService
from app.services.hashing import HashingService
from app.services.sms import SmsSender, create_sms_sender
from app.services.totp import TotpService
from app.services.two_factor import TwoFactorService

logger = structlog.get_logger()

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Get the authenticated user's ID from the bearer token.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    if credentials:
        token_data = AuthService.decode_token(credentials.credentials)
        if token_data:
            return token_data.user_id

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


# Stateless capabilities are built once and shared between requests
@lru_cache()
def get_totp_service() -> TotpService:
    return TotpService.from_settings(settings)


@lru_cache()
def get_hashing_service() -> HashingService:
    return HashingService(rounds=settings.BCRYPT_ROUNDS)


@lru_cache()
def get_sms_sender() -> SmsSender:
    return create_sms_sender(settings)


async def get_two_factor_service(
    db: AsyncSession = Depends(get_db),
    totp: TotpService = Depends(get_totp_service),
    hasher: HashingService = Depends(get_hashing_service),
    sms_sender: SmsSender = Depends(get_sms_sender),
) -> TwoFactorService:
    """Request-scoped orchestrator bound to the request's database session."""
    return TwoFactorService(
        totp=totp,
        hasher=hasher,
        sms_sender=sms_sender,
        two_factor_repository=TwoFactorRepository(db),
        user_repository=UserRepository(db),
        sms_code_ttl=timedelta(seconds=settings.SMS_CODE_TTL_SECONDS),
        sms_template=settings.SMS_MESSAGE_TEMPLATE,
        backup_code_count=settings.BACKUP_CODE_COUNT,
    )
