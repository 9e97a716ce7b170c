"""Two-factor record store.

One record per user, keyed by user id. Writes are committed immediately and
follow last-write-wins semantics: there is no locking between a read and the
write that follows it.
"""
import copy
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from app.exceptions import RecordNotFoundError
from app.models.two_factor import TwoFactorAuth

logger = structlog.get_logger()

# Values a freshly created record starts from
RECORD_DEFAULTS: Dict[str, Any] = {
    "totp_enabled": False,
    "totp_verified": False,
    "totp_secret": None,
    "backup_codes": [],
    "sms_enabled": False,
    "phone_verified": False,
    "phone_number": None,
    "sms_code": None,
    "sms_code_expires_at": None,
    "last_used_at": None,
}

RECORD_FIELDS = frozenset(RECORD_DEFAULTS)


def check_record_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - RECORD_FIELDS
    if unknown:
        raise ValueError(f"Unknown two-factor fields: {', '.join(sorted(unknown))}")


class TwoFactorRepository:
    """SQLAlchemy-backed record store."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_user_id(self, user_id: str) -> Optional[TwoFactorAuth]:
        """Get the two-factor record for a user, if any."""
        result = await self.db.execute(
            select(TwoFactorAuth).where(TwoFactorAuth.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        user_id: str,
        create: Dict[str, Any],
        update: Dict[str, Any],
    ) -> TwoFactorAuth:
        """Apply `create` when the user has no record yet, `update` otherwise."""
        check_record_fields(create)
        check_record_fields(update)

        record = await self.find_by_user_id(user_id)
        if record is None:
            values = {**copy.deepcopy(RECORD_DEFAULTS), **create}
            record = TwoFactorAuth(user_id=user_id, **values)
            self.db.add(record)
            logger.debug("Two-factor record created", user_id=user_id)
        else:
            for field, value in update.items():
                setattr(record, field, value)

        await self.db.commit()
        return record

    async def update(self, user_id: str, **fields: Any) -> TwoFactorAuth:
        """Update fields on an existing record.

        Raises:
            RecordNotFoundError: If the user has no record
        """
        check_record_fields(fields)

        record = await self.find_by_user_id(user_id)
        if record is None:
            raise RecordNotFoundError(user_id)

        for field, value in fields.items():
            setattr(record, field, value)

        await self.db.commit()
        return record
