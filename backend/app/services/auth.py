"""Access-token handling for the two-factor endpoints.

Tokens are minted by the sign-in service; this side only needs to verify
them and read the subject.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
import structlog

from app.config import settings
from app.schemas.user import TokenData

logger = structlog.get_logger()

ACCESS_TOKEN_TYPE = "access"


class AuthService:
    """Service for access-token operations."""

    @classmethod
    def create_access_token(
        cls,
        user_id: str,
        email: Optional[str] = None,
        token_version: int = 0,
        expires_minutes: int = 30,
    ) -> str:
        """
        Create a JWT access token.

        Used by tooling and tests; production tokens come from the sign-in flow
        and share the same claims.
        """
        expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
        to_encode = {
            "sub": str(user_id),
            "email": email,
            "exp": expire,
            "type": ACCESS_TOKEN_TYPE,
            "ver": token_version,
        }
        return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @classmethod
    def decode_token(cls, token: str) -> Optional[TokenData]:
        """Decode and validate a JWT access token."""
        try:
            payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except JWTError:
            return None

        user_id = payload.get("sub")
        if user_id is None or payload.get("type") != ACCESS_TOKEN_TYPE:
            return None

        return TokenData(
            user_id=user_id,
            email=payload.get("email"),
            token_version=payload.get("ver", 0),
        )
