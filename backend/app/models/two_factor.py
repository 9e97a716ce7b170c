"""Two-factor authentication state, one row per user."""
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import relationship

from app.database import Base


# Column sizes
TOTP_SECRET_LENGTH = 32  # pyotp.random_base32() output
SMS_CODE_LENGTH = 6
E164_MAX_LENGTH = 16  # "+" and up to 15 digits


class TwoFactorMethod(str, Enum):
    """Second factor presented at sign-in."""
    TOTP = "totp"
    SMS = "sms"
    BACKUP = "backup"


class TwoFactorAuth(Base):
    """Per-user TOTP, SMS and backup-code state."""

    __tablename__ = "two_factor_auth"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False, index=True)

    # TOTP (authenticator app)
    totp_enabled = Column(Boolean, default=False, nullable=False)
    totp_verified = Column(Boolean, default=False, nullable=False)
    totp_secret = Column(String(TOTP_SECRET_LENGTH), nullable=True)
    backup_codes = Column(JSON, default=list, nullable=False)  # Hashed, in generation order

    # SMS
    sms_enabled = Column(Boolean, default=False, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)
    phone_number = Column(String(E164_MAX_LENGTH), nullable=True)
    sms_code = Column(String(SMS_CODE_LENGTH), nullable=True)  # Short-lived, stored as issued
    sms_code_expires_at = Column(DateTime(timezone=True), nullable=True)

    last_used_at = Column(DateTime(timezone=True), nullable=True)

    # Timestamps - use timezone-aware datetimes
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False)

    # Relationships
    user = relationship("User", back_populates="two_factor_auth")

    def __repr__(self) -> str:
        return f"<TwoFactorAuth user={self.user_id} totp={self.totp_enabled} sms={self.sms_enabled}>"
