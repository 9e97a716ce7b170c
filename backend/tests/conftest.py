"""Shared fixtures for the two-factor test suite."""
import copy
import os

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SMS_PROVIDER", "log")

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pyotp
import pytest

from app.exceptions import RecordNotFoundError
from app.models.two_factor import TwoFactorAuth
from app.repositories.two_factor import RECORD_DEFAULTS, RECORD_FIELDS, check_record_fields
from app.services.hashing import HashingService
from app.services.totp import TotpService
from app.services.two_factor import TwoFactorService

USER_ID = "user-123"
USER_EMAIL = "user@example.com"
PHONE_NUMBER = "+15551234567"


class FakeClock:
    """Controllable replacement for the orchestrator's clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeUserRepository:
    def __init__(self, *users):
        self.users = {user.id: user for user in users}

    async def find_by_id(self, user_id: str):
        return self.users.get(user_id)


class InMemoryTwoFactorRepository:
    """Dictionary-backed record store with the same contract as TwoFactorRepository.

    Returned records are detached copies, so a caller holding a record
    does not observe later writes, as with a database row.
    """

    def __init__(self):
        self._records = {}

    @staticmethod
    def _detach(record: TwoFactorAuth) -> TwoFactorAuth:
        values = {field: copy.deepcopy(getattr(record, field)) for field in RECORD_FIELDS}
        return TwoFactorAuth(user_id=record.user_id, **values)

    async def find_by_user_id(self, user_id: str):
        record = self._records.get(user_id)
        return self._detach(record) if record is not None else None

    async def upsert(self, user_id: str, create: dict, update: dict) -> TwoFactorAuth:
        check_record_fields(create)
        check_record_fields(update)

        if user_id not in self._records:
            values = {**copy.deepcopy(RECORD_DEFAULTS), **copy.deepcopy(create)}
            self._records[user_id] = TwoFactorAuth(user_id=user_id, **values)
        else:
            record = self._records[user_id]
            for field, value in copy.deepcopy(update).items():
                setattr(record, field, value)
        return self._detach(self._records[user_id])

    async def update(self, user_id: str, **fields) -> TwoFactorAuth:
        check_record_fields(fields)

        record = self._records.get(user_id)
        if record is None:
            raise RecordNotFoundError(user_id)

        for field, value in copy.deepcopy(fields).items():
            setattr(record, field, value)
        return self._detach(record)


def current_token(secret: str) -> str:
    """Token an authenticator app would show right now."""
    return pyotp.TOTP(secret).now()


def wrong_token(secret: str) -> str:
    """A well-formed token outside the accepted window."""
    totp = pyotp.TOTP(secret)
    now = datetime.now(timezone.utc)
    accepted = {totp.at(now + timedelta(seconds=offset)) for offset in (-60, -30, 0, 30, 60)}
    return next(candidate for candidate in ("000000", "000001", "000002", "000003", "000004", "000005", "000006") if candidate not in accepted)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def totp_service():
    return TotpService(issuer="TestApp")


@pytest.fixture
def hasher():
    # Minimum bcrypt cost keeps the suite fast
    return HashingService(rounds=4)


@pytest.fixture
def sms_sender():
    sender = AsyncMock()
    sender.send.return_value = None
    return sender


@pytest.fixture
def records():
    return InMemoryTwoFactorRepository()


@pytest.fixture
def users():
    return FakeUserRepository(SimpleNamespace(id=USER_ID, email=USER_EMAIL))


@pytest.fixture
def service(totp_service, hasher, sms_sender, records, users, clock):
    return TwoFactorService(
        totp=totp_service,
        hasher=hasher,
        sms_sender=sms_sender,
        two_factor_repository=records,
        user_repository=users,
        clock=clock,
    )
