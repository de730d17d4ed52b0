"""Tests for email verification: issue, verify and reissue."""
from dataclasses import replace
from datetime import timedelta
import uuid

import pytest
from sqlalchemy import select

from turfease.models.account import Account
from turfease.models.base import AccountRole
from turfease.services.account_service import AccountService, RegistrationData
from turfease.services.errors import (
    ConflictError,
    DependencyFailureError,
    ExpiredError,
    NotFoundError,
    ValidationError,
)
from turfease.services.verification_service import VerificationService
from turfease.utils.datetime_helpers import utc_now
from turfease.utils.otp_store import EXPIRED_RETENTION
from tests.conftest import owner_payload, player_payload


@pytest.fixture
def verification(db_session, otp_store, notifier):
    return VerificationService(db_session, otp_store, notifier)


@pytest.fixture
async def unverified_player(db_session):
    return await AccountService(db_session).register(RegistrationData(**player_payload()))


async def _expire(otp_store, account):
    key = str(account.account_id)
    entry = await otp_store.get(key)
    await otp_store.put(key, replace(entry, expires_at=utc_now() - timedelta(seconds=1)))


@pytest.mark.asyncio
class TestIssue:
    async def test_issue_stores_and_sends_code(self, verification, unverified_player, otp_store, notifier):
        entry = await verification.issue(unverified_player)

        assert len(entry.code) == 6
        assert entry.code.isdigit()
        assert await otp_store.get(str(unverified_player.account_id)) == entry
        assert notifier.verification_codes == [
            {
                "email": unverified_player.email,
                "code": entry.code,
                "display_name": unverified_player.first_name,
                "resend": False,
            }
        ]

    async def test_delivery_failure_removes_account_and_code(
        self, verification, unverified_player, otp_store, notifier, db_session
    ):
        notifier.fail_verification = True
        account_id = unverified_player.account_id
        email = unverified_player.email

        with pytest.raises(DependencyFailureError) as exc_info:
            await verification.issue(unverified_player)

        assert exc_info.value.code == "delivery_failed"
        assert await otp_store.get(str(account_id)) is None
        result = await db_session.execute(select(Account).where(Account.email == email))
        assert result.scalars().first() is None


@pytest.mark.asyncio
class TestVerify:
    async def test_correct_code_verifies_once(self, verification, unverified_player, otp_store):
        entry = await verification.issue(unverified_player)

        account = await verification.verify(unverified_player.account_id, entry.code)

        assert account.is_email_verified is True
        assert account.email_verified_at is not None
        assert await otp_store.get(str(account.account_id)) is None

        with pytest.raises(ConflictError) as exc_info:
            await verification.verify(unverified_player.account_id, entry.code)
        assert exc_info.value.code == "already_verified"

    async def test_owner_stays_pending_after_verification(self, db_session, verification):
        owner = await AccountService(db_session).register(RegistrationData(**owner_payload()))
        entry = await verification.issue(owner)

        owner = await verification.verify(owner.account_id, entry.code)

        assert owner.is_email_verified is True
        assert owner.approval_status == "pending"
        assert owner.is_approved_by_admin is False

    async def test_wrong_code_keeps_entry(self, verification, unverified_player, otp_store):
        entry = await verification.issue(unverified_player)
        wrong = "000000" if entry.code != "000000" else "111111"

        with pytest.raises(ValidationError) as exc_info:
            await verification.verify(unverified_player.account_id, wrong)

        assert exc_info.value.code == "otp_mismatch"
        assert await otp_store.get(str(unverified_player.account_id)) == entry

        account = await verification.verify(unverified_player.account_id, entry.code)
        assert account.is_email_verified is True

    async def test_expired_code_is_reported_then_gone(self, verification, unverified_player, otp_store):
        entry = await verification.issue(unverified_player)
        await _expire(otp_store, unverified_player)

        with pytest.raises(ExpiredError) as exc_info:
            await verification.verify(unverified_player.account_id, entry.code)
        assert exc_info.value.code == "otp_expired"

        with pytest.raises(ValidationError) as exc_info:
            await verification.verify(unverified_player.account_id, entry.code)
        assert exc_info.value.code == "no_pending_code"

    async def test_code_past_retention_reads_as_no_pending_code(
        self, verification, unverified_player, otp_store
    ):
        entry = await verification.issue(unverified_player)
        key = str(unverified_player.account_id)
        await otp_store.put(key, replace(entry, expires_at=utc_now() - EXPIRED_RETENTION - timedelta(minutes=1)))

        with pytest.raises(ValidationError) as exc_info:
            await verification.verify(unverified_player.account_id, entry.code)

        assert exc_info.value.code == "no_pending_code"
        assert await otp_store.get(key) is None

    async def test_code_within_retention_still_reads_as_expired(
        self, verification, unverified_player, otp_store
    ):
        entry = await verification.issue(unverified_player)
        key = str(unverified_player.account_id)
        await otp_store.put(key, replace(entry, expires_at=utc_now() - EXPIRED_RETENTION + timedelta(minutes=1)))

        with pytest.raises(ExpiredError):
            await verification.verify(unverified_player.account_id, entry.code)

    async def test_no_pending_code(self, verification, unverified_player):
        with pytest.raises(ValidationError) as exc_info:
            await verification.verify(unverified_player.account_id, "123456")

        assert exc_info.value.code == "no_pending_code"

    async def test_unknown_account(self, verification):
        with pytest.raises(NotFoundError) as exc_info:
            await verification.verify(uuid.uuid4(), "123456")

        assert exc_info.value.code == "account_not_found"

    async def test_already_verified_checked_before_code(self, verification, account_factory):
        account = await account_factory(AccountRole.PLAYER, verified=True)

        with pytest.raises(ConflictError) as exc_info:
            await verification.verify(account.account_id, "anything")

        assert exc_info.value.code == "already_verified"


@pytest.mark.asyncio
class TestReissue:
    async def test_reissue_invalidates_previous_code(self, verification, unverified_player, notifier):
        first = await verification.issue(unverified_player)
        second = await verification.reissue(unverified_player.account_id)

        assert notifier.verification_codes[-1]["resend"] is True
        assert notifier.verification_codes[-1]["code"] == second.code

        if first.code != second.code:
            with pytest.raises(ValidationError) as exc_info:
                await verification.verify(unverified_player.account_id, first.code)
            assert exc_info.value.code == "otp_mismatch"

        account = await verification.verify(unverified_player.account_id, second.code)
        assert account.is_email_verified is True

    async def test_reissue_after_expiry_gives_fresh_code(self, verification, unverified_player, otp_store):
        await verification.issue(unverified_player)
        await _expire(otp_store, unverified_player)

        entry = await verification.reissue(unverified_player.account_id)

        assert not entry.is_expired()
        account = await verification.verify(unverified_player.account_id, entry.code)
        assert account.is_email_verified is True

    async def test_reissue_delivery_failure_keeps_new_code(
        self, verification, unverified_player, otp_store, notifier, db_session
    ):
        await verification.issue(unverified_player)
        notifier.fail_verification = True

        with pytest.raises(DependencyFailureError) as exc_info:
            await verification.reissue(unverified_player.account_id)

        assert exc_info.value.code == "delivery_failed"
        assert await otp_store.get(str(unverified_player.account_id)) is not None
        assert await AccountService(db_session).get_by_id(unverified_player.account_id) is not None

    async def test_reissue_for_verified_account_conflicts(self, verification, account_factory):
        account = await account_factory(AccountRole.OWNER, verified=True)

        with pytest.raises(ConflictError) as exc_info:
            await verification.reissue(account.account_id)

        assert exc_info.value.code == "already_verified"

    async def test_reissue_unknown_account(self, verification):
        with pytest.raises(NotFoundError):
            await verification.reissue(uuid.uuid4())
