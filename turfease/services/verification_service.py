"""Email verification with one-time codes.

An account moves ``unverified -> verified`` exactly once. Codes live in the
injected ``OtpStore`` keyed by account id, one live code per account.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.models.account import Account
from turfease.services.account_service import AccountService
from turfease.services.errors import (
    ConflictError,
    DependencyFailureError,
    ExpiredError,
    ValidationError,
)
from turfease.services.notification_service import Notifier
from turfease.utils.datetime_helpers import utc_now
from turfease.utils.otp_store import OtpEntry, OtpStore
from turfease.utils.passwords import generate_numeric_code

logger = logging.getLogger(__name__)


class VerificationService:
    def __init__(
        self,
        db: AsyncSession,
        otp_store: OtpStore,
        notifier: Notifier,
        *,
        account_service: AccountService | None = None,
    ):
        self.db = db
        self.otp_store = otp_store
        self.notifier = notifier
        self.settings = get_settings()
        self.account_service = account_service or AccountService(db)

    def _new_entry(self, account: Account) -> OtpEntry:
        return OtpEntry(
            code=generate_numeric_code(self.settings.otp_length),
            email=account.email,
            display_name=account.display_name,
            role=account.role,
            expires_at=utc_now() + timedelta(minutes=self.settings.otp_ttl_minutes),
        )

    async def issue(self, account: Account) -> OtpEntry:
        """Store a first code for a just-created account and email it.

        If delivery fails the account and its code are removed and
        ``DependencyFailureError("delivery_failed")`` is raised.
        """
        key = str(account.account_id)
        entry = self._new_entry(account)
        await self.otp_store.put(key, entry)

        result = await self.notifier.send_verification_code(entry.email, entry.code, entry.display_name)
        if not result.success:
            logger.error(f"Verification email to account {key} failed ({result.error}); removing account")
            await self.otp_store.discard(key, entry)
            await self.account_service.delete_account(account.account_id)
            raise DependencyFailureError(
                "delivery_failed", "Failed to send verification email. Please try again."
            )

        logger.info(f"Issued verification code for account {key}")
        return entry

    async def _require_unverified(self, account_id: UUID | str) -> Account:
        account = await self.account_service.require(account_id)
        if account.is_email_verified:
            raise ConflictError("already_verified", "Email is already verified")
        return account

    async def verify(self, account_id: UUID | str, code: str) -> Account:
        account = await self._require_unverified(account_id)
        key = str(account.account_id)

        entry = await self.otp_store.get(key)
        if entry is None:
            raise ValidationError("no_pending_code", "No verification code is pending. Please request a new one.")

        if entry.is_expired():
            await self.otp_store.discard(key, entry)
            raise ExpiredError("otp_expired", "Verification code has expired. Please request a new one.")

        if code != entry.code:
            raise ValidationError("otp_mismatch", "Invalid verification code", field="otp")

        account.is_email_verified = True
        account.email_verified_at = utc_now()
        await self.db.commit()
        await self.db.refresh(account)

        # A concurrent reissue may already have replaced this entry; leave that one alone
        await self.otp_store.discard(key, entry)
        logger.info(f"Verified email for account {key}")
        return account

    async def reissue(self, account_id: UUID | str) -> OtpEntry:
        """Replace any pending code with a new one and email it.

        The new code is kept even when delivery fails so the caller can retry.
        """
        account = await self._require_unverified(account_id)
        key = str(account.account_id)
        entry = self._new_entry(account)
        await self.otp_store.put(key, entry)

        result = await self.notifier.send_verification_code(
            entry.email, entry.code, entry.display_name, resend=True
        )
        if not result.success:
            logger.warning(f"Resent verification email to account {key} failed: {result.error}")
            raise DependencyFailureError(
                "delivery_failed", "Failed to send verification email. Please try again."
            )

        logger.info(f"Reissued verification code for account {key}")
        return entry
