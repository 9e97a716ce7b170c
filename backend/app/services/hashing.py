"""Hashing capability for backup codes."""
import asyncio
from typing import List, Sequence

from passlib.context import CryptContext
import structlog

logger = structlog.get_logger()


class HashingService:
    """bcrypt hashing with the blocking work moved off the event loop."""

    def __init__(self, rounds: int = 12):
        self.pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    async def hash(self, plain: str) -> str:
        """Hash a plaintext value."""
        return await asyncio.to_thread(self.pwd_context.hash, plain)

    async def hash_many(self, values: Sequence[str]) -> List[str]:
        """Hash several values concurrently; output order matches input order."""
        return list(await asyncio.gather(*(self.hash(value) for value in values)))

    async def verify(self, digest: str, plain: str) -> bool:
        """Check a plaintext value against a digest. Unrecognised digests never match."""
        try:
            return await asyncio.to_thread(self.pwd_context.verify, plain, digest)
        except (ValueError, TypeError):
            logger.warning("Unrecognised digest format in backup code pool")
            return False
