#!/usr/bin/env python3
"""
Admin script to inspect and reset two-factor authentication.

Usage:
    python scripts/manage_two_factor.py status --email user@example.com
    python scripts/manage_two_factor.py reset --email user@example.com --method totp
    python scripts/manage_two_factor.py reset --user-id 3f0c... --method all
"""
import asyncio
import sys
import argparse
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from app.config import settings
from app.database import get_db_context
from app.models.user import User
from app.models.two_factor import TwoFactorMethod
from app.repositories import TwoFactorRepository, UserRepository
from app.services.hashing import HashingService
from app.services.sms import LoggingSmsSender
from app.services.totp import TotpService
from app.services.two_factor import TwoFactorService


def build_service(db) -> TwoFactorService:
    """Orchestrator for operator commands; never sends SMS."""
    return TwoFactorService(
        totp=TotpService.from_settings(settings),
        hasher=HashingService(rounds=settings.BCRYPT_ROUNDS),
        sms_sender=LoggingSmsSender(),
        two_factor_repository=TwoFactorRepository(db),
        user_repository=UserRepository(db),
    )


async def resolve_user_id(db, email: str = None, user_id: str = None):
    """Find the target user by email or id."""
    if user_id:
        user = await UserRepository(db).find_by_id(user_id)
    else:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

    if not user:
        print(f"❌ User {email or user_id} not found!")
        return None
    return user.id


async def show_status(email: str = None, user_id: str = None):
    """Print the 2FA status of a user."""
    async with get_db_context() as db:
        target = await resolve_user_id(db, email, user_id)
        if not target:
            return

        status = await build_service(db).get_status(target)

        print(f"\n2FA status for {email or target}")
        print("-" * 40)
        print(f"{'TOTP enabled':<20} {'Yes' if status['totp_enabled'] else 'No'}")
        print(f"{'SMS enabled':<20} {'Yes' if status['sms_enabled'] else 'No'}")
        print(f"{'Phone verified':<20} {'Yes' if status['phone_verified'] else 'No'}")
        print(f"{'Backup codes left':<20} {status['backup_codes_count']}")


async def reset(method: str, email: str = None, user_id: str = None):
    """Clear a user's 2FA method without a code."""
    async with get_db_context() as db:
        target = await resolve_user_id(db, email, user_id)
        if not target:
            return

        selected = None if method == "all" else TwoFactorMethod(method)
        if not await build_service(db).reset(target, selected):
            print(f"❌ {email or target} has no two-factor record")
            return

        print(f"✅ Two-factor {method} reset for {email or target}")


def main():
    parser = argparse.ArgumentParser(description="Two-factor management script")
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    def add_target(sub):
        target = sub.add_mutually_exclusive_group(required=True)
        target.add_argument("--email", help="User email")
        target.add_argument("--user-id", help="User ID")

    status_parser = subparsers.add_parser("status", help="Show a user's 2FA status")
    add_target(status_parser)

    reset_parser = subparsers.add_parser("reset", help="Turn off a user's 2FA method")
    add_target(reset_parser)
    reset_parser.add_argument("--method", choices=["totp", "sms", "all"], default="all", help="Method to reset")

    args = parser.parse_args()

    if args.command == "status":
        asyncio.run(show_status(args.email, args.user_id))
    elif args.command == "reset":
        asyncio.run(reset(args.method, args.email, args.user_id))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
