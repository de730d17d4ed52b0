"""Password reset by emailed link."""
from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.models.account import Account
from turfease.services.account_service import AccountService
from turfease.services.errors import (
    DependencyFailureError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from turfease.services.notification_service import Notifier
from turfease.utils.datetime_helpers import ensure_utc, utc_now
from turfease.utils.passwords import (
    PasswordValidationError,
    hash_password,
    hash_token,
    validate_password_strength,
)

logger = logging.getLogger(__name__)


class PasswordResetService:
    def __init__(self, db: AsyncSession, notifier: Notifier, *, account_service: AccountService | None = None):
        self.db = db
        self.notifier = notifier
        self.settings = get_settings()
        self.account_service = account_service or AccountService(db)

    def reset_url(self, token: str) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}/reset-password/{token}"

    async def request_reset(self, email: str) -> None:
        """Store a hashed single-use token on the account and email the link."""
        account = await self.account_service.get_by_email(email)
        if not account:
            raise NotFoundError("account_not_found", "There is no user with that email")

        token = secrets.token_hex(20)
        account.reset_password_token_hash = hash_token(token)
        account.reset_password_expires_at = utc_now() + timedelta(minutes=self.settings.password_reset_ttl_minutes)
        await self.db.commit()

        result = await self.notifier.send_password_reset(account.email, account.display_name, self.reset_url(token))
        if not result.success:
            logger.error(f"Password reset email for account {account.account_id} failed: {result.error}")
            account.reset_password_token_hash = None
            account.reset_password_expires_at = None
            await self.db.commit()
            raise DependencyFailureError("delivery_failed", "Email could not be sent. Please try again later.")

        logger.info(f"Password reset requested for account {account.account_id}")

    async def reset_password(self, token: str, new_password: str) -> Account:
        try:
            validate_password_strength(new_password)
        except PasswordValidationError as exc:
            raise ValidationError("weak_password", str(exc), field="password") from exc

        result = await self.db.execute(
            select(Account).where(Account.reset_password_token_hash == hash_token(token or ""))
        )
        account = result.scalars().first()
        if not account:
            raise ValidationError("reset_token_invalid", "Invalid reset token")

        if ensure_utc(account.reset_password_expires_at) is None or utc_now() > ensure_utc(account.reset_password_expires_at):
            account.reset_password_token_hash = None
            account.reset_password_expires_at = None
            await self.db.commit()
            raise ExpiredError("reset_token_expired", "Reset token has expired. Please request a new one.")

        account.password_hash = hash_password(new_password)
        account.reset_password_token_hash = None
        account.reset_password_expires_at = None
        await self.db.commit()
        await self.db.refresh(account)
        logger.info(f"Password reset for account {account.account_id}")
        return account
