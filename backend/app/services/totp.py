"""TOTP engine: secrets, enrollment QR codes, token checks and backup codes."""
import base64
import io
import secrets
from datetime import datetime
from typing import List, Optional, Tuple

import pyotp
import qrcode
from qrcode.constants import ERROR_CORRECT_H
import structlog

logger = structlog.get_logger()

BACKUP_CODE_BYTES = 4  # Rendered as 8 uppercase hex characters
DEFAULT_BACKUP_CODE_COUNT = 10


class TotpService:
    """Stateless TOTP helper, safe to share between requests."""

    def __init__(self, issuer: str, step: int = 30, window: int = 1):
        """
        Args:
            issuer: Name shown by authenticator apps next to the account label
            step: Time step in seconds
            window: Number of steps accepted before and after the current one
        """
        self.issuer = issuer
        self.step = step
        self.window = window

    @classmethod
    def from_settings(cls, settings) -> "TotpService":
        """Build an engine from application settings."""
        return cls(
            issuer=settings.APP_NAME,
            step=settings.TOTP_STEP_SECONDS,
            window=settings.TOTP_VALID_WINDOW,
        )

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, interval=self.step)

    def generate_secret(self, label: str) -> Tuple[str, str]:
        """
        Generate a new shared secret and its provisioning URI.

        Args:
            label: Account identity shown in the authenticator app (usually the email)

        Returns:
            Tuple of (secret, otpauth URI)
        """
        secret = pyotp.random_base32()
        uri = self._totp(secret).provisioning_uri(name=label, issuer_name=self.issuer)
        return secret, uri

    @staticmethod
    def generate_qr_code(uri: str) -> str:
        """Render a provisioning URI as a PNG data URI."""
        qr = qrcode.QRCode(error_correction=ERROR_CORRECT_H, box_size=10, border=1)
        qr.add_data(uri)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        img_base64 = base64.b64encode(buffer.getvalue()).decode()

        return f"data:image/png;base64,{img_base64}"

    def verify_token(self, secret: str, token: str, for_time: Optional[datetime] = None) -> bool:
        """
        Verify a TOTP token.

        Any failure, including a malformed token or secret, is reported as
        an invalid token rather than raised.

        Args:
            secret: The user's TOTP secret
            token: The 6-digit code from the authenticator app
            for_time: Instant to verify at (defaults to now)

        Returns:
            True if valid, False otherwise
        """
        if not token or not token.isdigit():
            return False
        try:
            return self._totp(secret).verify(token, for_time=for_time, valid_window=self.window)
        except Exception:
            logger.debug("TOTP verification raised", exc_info=True)
            return False

    @staticmethod
    def generate_backup_codes(count: int = DEFAULT_BACKUP_CODE_COUNT) -> List[str]:
        """Generate single-use recovery codes from a CSPRNG."""
        return [secrets.token_hex(BACKUP_CODE_BYTES).upper() for _ in range(count)]
