"""Create an administrator account, or promote an existing account to admin.

Administrators cannot self-register, so the first one is seeded from here.
"""
import argparse
import asyncio
import getpass
import logging

from turfease.database import AsyncSessionLocal
from turfease.models.base import AccountRole, ApprovalStatus
from turfease.services.account_service import AccountService, new_account
from turfease.services.errors import ServiceError
from turfease.utils.datetime_helpers import utc_now
from turfease.utils.passwords import PasswordValidationError, hash_password, validate_password_strength

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_or_promote_admin(email: str, password: str | None, first_name: str, last_name: str) -> bool:
    """Return True when an account was created or promoted."""
    async with AsyncSessionLocal() as db:
        account_service = AccountService(db)
        existing = await account_service.get_by_email(email)

        if existing:
            if existing.is_admin:
                logger.info(f"{email} is already an administrator")
                return False
            existing.role = AccountRole.ADMIN.value
            existing.approval_status = ApprovalStatus.APPROVED.value
            existing.is_approved_by_admin = True
            if not existing.is_email_verified:
                existing.is_email_verified = True
                existing.email_verified_at = utc_now()
            await db.commit()
            logger.info(f"Promoted {email} ({existing.account_id}) to administrator")
            return True

        if not password:
            logger.error("A password is required to create a new administrator")
            return False

        account = new_account(
            AccountRole.ADMIN,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            email_verified=True,
            agree_to_terms=True,
        )
        try:
            account = await account_service.create_account(account)
        except ServiceError as e:
            logger.error(f"Could not create administrator: {e.message}")
            return False
        logger.info(f"Created administrator {email} ({account.account_id})")
        return True


def main():
    """Main entry point for the admin bootstrap script."""
    parser = argparse.ArgumentParser(description="Create or promote a TurfEase administrator")
    parser.add_argument("email", help="Administrator email address")
    parser.add_argument("--first-name", default="Admin", help="First name for a new account")
    parser.add_argument("--last-name", default="", help="Last name for a new account")
    parser.add_argument(
        "--password",
        help="Password for a new account (prompted when omitted)",
    )
    parser.add_argument(
        "--promote-only",
        action="store_true",
        help="Only promote an existing account; never create one",
    )

    args = parser.parse_args()

    password = None
    if not args.promote_only:
        password = args.password or getpass.getpass("Password for new administrator (blank to promote only): ")
        if password:
            try:
                validate_password_strength(password)
            except PasswordValidationError as e:
                parser.error(str(e))

    changed = asyncio.run(create_or_promote_admin(args.email, password, args.first_name, args.last_name))
    raise SystemExit(0 if changed else 1)


if __name__ == "__main__":
    main()
