"""Two-factor authentication orchestration.

Drives enrollment, verification and removal of the three second factors:

- TOTP (authenticator app), with a pool of hashed single-use backup codes
- SMS one-time codes sent to a verified phone number
- Backup codes, consumed on first successful match

Every operation is a read-modify-write against the user's record with no
locking; concurrent requests for the same user resolve last-write-wins.
"""
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

import structlog

from app.exceptions import (
    ChallengeIssuedError,
    DependencyFailureError,
    ExpiredCodeError,
    InvalidCredentialError,
    NotConfiguredError,
    NotEnabledError,
    UserNotFoundError,
)
from app.models.two_factor import TwoFactorMethod
from app.services.hashing import HashingService
from app.services.sms import SmsSender
from app.services.totp import DEFAULT_BACKUP_CODE_COUNT, TotpService

logger = structlog.get_logger()

SMS_CODE_MIN = 100000
SMS_CODE_MAX = 999999
SMS_CODE_TTL = timedelta(milliseconds=600_000)
TOTP_TOKEN_LENGTH = 6
BACKUP_CODE_LENGTH = 8
DEFAULT_SMS_TEMPLATE = "Your verification code is: {code}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (e.g. from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _codes_match(expected: str, provided: str) -> bool:
    return secrets.compare_digest(expected.encode(), provided.encode())


def generate_sms_code() -> str:
    """Uniform 6-digit code in [100000, 999999] from a CSPRNG."""
    return str(SMS_CODE_MIN + secrets.randbelow(SMS_CODE_MAX - SMS_CODE_MIN + 1))


class TwoFactorService:
    """Business rules for every two-factor operation."""

    def __init__(
        self,
        totp: TotpService,
        hasher: HashingService,
        sms_sender: SmsSender,
        two_factor_repository,
        user_repository,
        clock: Callable[[], datetime] = _utcnow,
        sms_code_ttl: timedelta = SMS_CODE_TTL,
        sms_template: str = DEFAULT_SMS_TEMPLATE,
        backup_code_count: int = DEFAULT_BACKUP_CODE_COUNT,
    ):
        self.totp = totp
        self.hasher = hasher
        self.sms_sender = sms_sender
        self.records = two_factor_repository
        self.users = user_repository
        self.clock = clock
        self.sms_code_ttl = sms_code_ttl
        self.sms_template = sms_template
        self.backup_code_count = backup_code_count

    # ==================== Status ====================

    async def get_status(self, user_id: str) -> dict:
        """Summarise which factors are active. Users without a record get all-off."""
        record = await self.records.find_by_user_id(user_id)

        if record is None:
            return {
                "totp_enabled": False,
                "sms_enabled": False,
                "phone_verified": False,
                "backup_codes_count": 0,
            }

        return {
            "totp_enabled": record.totp_enabled,
            "sms_enabled": record.sms_enabled,
            "phone_verified": record.phone_verified,
            "backup_codes_count": len(record.backup_codes or []),
        }

    async def has_2fa_enabled(self, user_id: str) -> bool:
        """True when TOTP or SMS is an active second factor."""
        record = await self.records.find_by_user_id(user_id)
        if record is None:
            return False
        return bool(record.totp_enabled or record.sms_enabled)

    # ==================== TOTP ====================

    async def setup_totp(self, user_id: str) -> dict:
        """
        Start (or restart) TOTP enrollment.

        A fresh secret replaces any pending one, so only the most recent
        QR code can complete enrollment.

        Returns:
            Dictionary with qr_code (PNG data URI) and secret (for manual entry)
        """
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError("User not found")

        secret, uri = self.totp.generate_secret(user.email)
        qr_code = self.totp.generate_qr_code(uri)

        pending = {"totp_enabled": False, "totp_secret": secret}
        await self.records.upsert(user_id, create=pending, update=dict(pending))

        logger.info("TOTP setup initiated", user_id=user_id)
        return {"qr_code": qr_code, "secret": secret}

    async def verify_and_enable_totp(self, user_id: str, token: str) -> dict:
        """
        Confirm enrollment with a token from the authenticator app.

        Returns:
            Dictionary with the plaintext backup_codes (shown once) and a message
        """
        record = await self.records.find_by_user_id(user_id)
        if record is None or not record.totp_secret:
            raise NotConfiguredError("TOTP not set up")

        if not self.totp.verify_token(record.totp_secret, token):
            logger.warning("Invalid TOTP token", user_id=user_id)
            raise InvalidCredentialError("Invalid TOTP token")

        backup_codes = self.totp.generate_backup_codes(self.backup_code_count)
        hashed_codes = await self.hasher.hash_many(backup_codes)

        await self.records.update(
            user_id,
            totp_enabled=True,
            totp_verified=True,
            backup_codes=hashed_codes,
        )

        logger.info("TOTP enabled", user_id=user_id)
        return {"backup_codes": backup_codes, "message": "TOTP enabled successfully"}

    async def disable_totp(self, user_id: str, code: str) -> dict:
        """
        Turn TOTP off, proving possession with a TOTP token (6 characters)
        or a backup code (8 characters). Clears the secret and the backup pool.
        """
        record = await self.records.find_by_user_id(user_id)
        if record is None or not record.totp_enabled:
            raise NotEnabledError("TOTP not enabled")

        is_valid = False

        if len(code) == TOTP_TOKEN_LENGTH and record.totp_secret:
            is_valid = self.totp.verify_token(record.totp_secret, code)

        if not is_valid and len(code) == BACKUP_CODE_LENGTH:
            is_valid = await self._consume_backup_code(user_id, code, record.backup_codes or [])

        if not is_valid:
            logger.warning("Failed TOTP disable attempt", user_id=user_id)
            raise InvalidCredentialError("Invalid code")

        await self.records.update(
            user_id,
            totp_enabled=False,
            totp_verified=False,
            totp_secret=None,
            backup_codes=[],
        )

        logger.info("TOTP disabled", user_id=user_id)
        return {"message": "TOTP disabled successfully"}

    # ==================== SMS ====================

    async def _send_code(self, user_id: str, phone_number: str, code: str) -> None:
        """Send a code, turning any delivery failure into DependencyFailureError."""
        try:
            await self.sms_sender.send(phone_number, self.sms_template.format(code=code))
        except Exception as e:
            logger.error("Failed to send SMS code", user_id=user_id, error=str(e))
            raise DependencyFailureError("Failed to send SMS code") from e

    def _code_expiry(self) -> datetime:
        return self.clock() + self.sms_code_ttl

    def _is_expired(self, expires_at: datetime) -> bool:
        return self.clock() >= _as_utc(expires_at)

    async def setup_sms(self, user_id: str, phone_number: str) -> dict:
        """
        Send a verification code to a phone number and store it as pending.

        Nothing is written if the SMS cannot be sent. On an existing record
        the enabled/verified flags are left untouched.
        """
        code = generate_sms_code()
        await self._send_code(user_id, phone_number, code)

        expires_at = self._code_expiry()
        await self.records.upsert(
            user_id,
            create={
                "phone_number": phone_number,
                "sms_code": code,
                "sms_code_expires_at": expires_at,
                "sms_enabled": False,
                "phone_verified": False,
            },
            update={
                "phone_number": phone_number,
                "sms_code": code,
                "sms_code_expires_at": expires_at,
            },
        )

        logger.info("SMS code sent", user_id=user_id)
        return {"message": "SMS code sent"}

    async def verify_and_enable_sms(self, user_id: str, code: str) -> dict:
        """Confirm the pending SMS code and activate SMS as a second factor."""
        record = await self.records.find_by_user_id(user_id)
        if record is None or not record.sms_code or record.sms_code_expires_at is None:
            raise NotConfiguredError("SMS not set up")

        if self._is_expired(record.sms_code_expires_at):
            logger.warning("Expired SMS code", user_id=user_id)
            raise ExpiredCodeError("SMS code has expired")

        if not _codes_match(record.sms_code, code):
            logger.warning("Invalid SMS code", user_id=user_id)
            raise InvalidCredentialError("Invalid SMS code")

        await self.records.update(
            user_id,
            sms_enabled=True,
            phone_verified=True,
            sms_code=None,
            sms_code_expires_at=None,
        )

        logger.info("SMS enabled", user_id=user_id)
        return {"message": "SMS enabled successfully"}

    async def disable_sms(self, user_id: str, code: str) -> dict:
        """
        Turn SMS off. Two calls when no code is pending:

        1. No pending code: a fresh one is sent and ChallengeIssuedError raised.
        2. The caller resubmits with that code and SMS is cleared.
        """
        record = await self.records.find_by_user_id(user_id)
        if record is None or not record.sms_enabled:
            raise NotEnabledError("SMS not enabled")

        if not record.sms_code or record.sms_code_expires_at is None:
            if not record.phone_number:
                raise NotConfiguredError("Phone number not found")

            challenge = generate_sms_code()
            await self._send_code(user_id, record.phone_number, challenge)
            await self.records.update(
                user_id,
                sms_code=challenge,
                sms_code_expires_at=self._code_expiry(),
            )

            logger.info("SMS disable challenge sent", user_id=user_id)
            raise ChallengeIssuedError(
                "Verification code sent. Please provide the code to disable SMS."
            )

        if self._is_expired(record.sms_code_expires_at):
            raise ExpiredCodeError("SMS code has expired")

        if not _codes_match(record.sms_code, code):
            logger.warning("Failed SMS disable attempt", user_id=user_id)
            raise InvalidCredentialError("Invalid SMS code")

        await self.records.update(
            user_id,
            sms_enabled=False,
            phone_verified=False,
            phone_number=None,
            sms_code=None,
            sms_code_expires_at=None,
        )

        logger.info("SMS disabled", user_id=user_id)
        return {"message": "SMS disabled successfully"}

    async def resend_sms_code(self, user_id: str) -> dict:
        """Send a new code to the phone on file, superseding any pending one."""
        record = await self.records.find_by_user_id(user_id)
        if record is None or not record.phone_number:
            raise NotConfiguredError("Phone number not set up")

        code = generate_sms_code()
        await self._send_code(user_id, record.phone_number, code)
        await self.records.update(
            user_id,
            sms_code=code,
            sms_code_expires_at=self._code_expiry(),
        )

        logger.info("SMS code resent", user_id=user_id)
        return {"message": "SMS code resent"}

    async def send_2fa_code(self, user_id: str) -> None:
        """Issue the sign-in SMS challenge. Requires SMS to be an active factor."""
        record = await self.records.find_by_user_id(user_id)
        if record is None or not record.sms_enabled or not record.phone_number:
            raise NotEnabledError("SMS 2FA not enabled")

        code = generate_sms_code()
        await self._send_code(user_id, record.phone_number, code)
        await self.records.update(
            user_id,
            sms_code=code,
            sms_code_expires_at=self._code_expiry(),
        )

        logger.info("2FA SMS code sent", user_id=user_id)

    # ==================== Backup codes ====================

    async def _consume_backup_code(self, user_id: str, code: str, hashed_codes: Sequence[str]) -> bool:
        """Remove the first stored hash matching `code`. Returns whether one matched."""
        match_index: Optional[int] = None
        for index, digest in enumerate(hashed_codes):
            if await self.hasher.verify(digest, code):
                match_index = index
                break

        if match_index is None:
            return False

        remaining = [digest for index, digest in enumerate(hashed_codes) if index != match_index]
        await self.records.update(user_id, backup_codes=remaining)
        return True

    async def verify_backup_code(self, user_id: str, code: str) -> dict:
        """
        Consume a backup code.

        Returns:
            Dictionary with valid=True and remaining_codes, the pool size
            counted before this code was removed
        """
        record = await self.records.find_by_user_id(user_id)
        pool: List[str] = list(record.backup_codes or []) if record is not None else []
        if not pool:
            raise NotConfiguredError("No backup codes available")

        pool_size = len(pool)
        if not await self._consume_backup_code(user_id, code, pool):
            logger.warning("Invalid backup code", user_id=user_id)
            raise InvalidCredentialError("Invalid backup code")

        logger.info("Backup code used", user_id=user_id)
        return {"valid": True, "remaining_codes": pool_size}

    async def regenerate_backup_codes(self, user_id: str, totp_token: str) -> dict:
        """Replace the whole backup pool after a TOTP check. Returns the new plaintext codes once."""
        record = await self.records.find_by_user_id(user_id)
        if record is None or not record.totp_enabled or not record.totp_secret:
            raise NotEnabledError("TOTP not enabled")

        if not self.totp.verify_token(record.totp_secret, totp_token):
            logger.warning("Invalid TOTP token for backup code regeneration", user_id=user_id)
            raise InvalidCredentialError("Invalid TOTP token")

        backup_codes = self.totp.generate_backup_codes(self.backup_code_count)
        hashed_codes = await self.hasher.hash_many(backup_codes)
        await self.records.update(user_id, backup_codes=hashed_codes)

        logger.info("Backup codes regenerated", user_id=user_id)
        return {"backup_codes": backup_codes, "message": "Backup codes regenerated successfully"}

    # ==================== Sign-in ====================

    async def verify_2fa(self, user_id: str, code: str, method: TwoFactorMethod) -> bool:
        """
        Check a sign-in code for the given method.

        Business-rule failures (no record, unknown or inactive method, expired,
        mismatch) all come back as False. Storage errors propagate.
        """
        try:
            method = TwoFactorMethod(method)
        except ValueError:
            return False

        record = await self.records.find_by_user_id(user_id)
        if record is None:
            return False

        if method is TwoFactorMethod.TOTP:
            if not record.totp_enabled or not record.totp_secret:
                return False
            return self.totp.verify_token(record.totp_secret, code)

        if method is TwoFactorMethod.SMS:
            if not record.sms_enabled or not record.sms_code or record.sms_code_expires_at is None:
                return False
            if self._is_expired(record.sms_code_expires_at):
                return False
            if not _codes_match(record.sms_code, code):
                return False
            await self.records.update(
                user_id,
                sms_code=None,
                sms_code_expires_at=None,
                last_used_at=self.clock(),
            )
            return True

        if method is TwoFactorMethod.BACKUP:
            if not record.backup_codes:
                return False
            return await self._consume_backup_code(user_id, code, record.backup_codes)

        return False

    # ==================== Operator recovery ====================

    async def reset(self, user_id: str, method: Optional[TwoFactorMethod] = None) -> bool:
        """
        Clear a method's fields without a code (admin tooling only).

        Args:
            user_id: Target user
            method: TOTP or SMS; None clears both

        Returns:
            False if the user has no record
        """
        record = await self.records.find_by_user_id(user_id)
        if record is None:
            return False

        fields = {}
        if method in (None, TwoFactorMethod.TOTP, TwoFactorMethod.BACKUP):
            fields.update(totp_enabled=False, totp_verified=False, totp_secret=None, backup_codes=[])
        if method in (None, TwoFactorMethod.SMS):
            fields.update(
                sms_enabled=False,
                phone_verified=False,
                phone_number=None,
                sms_code=None,
                sms_code_expires_at=None,
            )

        await self.records.update(user_id, **fields)
        logger.warning("Two-factor reset by operator", user_id=user_id, method=method.value if method else "all")
        return True
