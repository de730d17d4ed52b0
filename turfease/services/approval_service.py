"""Administrator approval of turf owner accounts.

Owners start ``pending`` and are decided once, to ``approved`` or
``rejected``. The decision is committed before the owner is notified, and a
failed notification never reverts it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.models.account import Account
from turfease.models.base import AccountRole, ApprovalStatus
from turfease.services.account_service import AccountService
from turfease.services.errors import (
    ConflictError,
    ForbiddenError,
    ValidationError,
)
from turfease.services.notification_service import Notifier
from turfease.utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)

DECISIONS = (ApprovalStatus.APPROVED.value, ApprovalStatus.REJECTED.value)


@dataclass(frozen=True)
class DecisionNotice:
    """Everything needed to tell an owner about their decision."""

    account_id: str
    email: str
    display_name: str
    business_name: str
    decision: str
    notes: str


def check_login_gate(account: Account) -> None:
    """Refuse owners who are rejected or still awaiting a decision."""
    if account.role != AccountRole.OWNER.value:
        return
    if account.approval_status == ApprovalStatus.REJECTED.value:
        raise ForbiddenError(
            "account_rejected",
            "Your account has been rejected by admin. Please contact support.",
        )
    if account.approval_status == ApprovalStatus.PENDING.value or not account.is_approved_by_admin:
        raise ForbiddenError(
            "pending_approval",
            "Your account is pending admin approval. Please wait for approval.",
        )


async def send_decision_notice(notifier: Notifier, notice: DecisionNotice) -> bool:
    """Deliver a decision email; failures are logged and reported, never raised."""
    try:
        result = await notifier.send_approval_decision(
            notice.email,
            notice.display_name,
            notice.business_name,
            notice.decision,
            notice.notes,
        )
    except Exception as e:
        logger.warning(f"Approval notification for owner {notice.account_id} raised: {e}")
        return False
    if not result.success:
        logger.warning(f"Approval notification for owner {notice.account_id} failed: {result.error}")
        return False
    logger.info(f"Sent {notice.decision} notification to owner {notice.account_id}")
    return True


class ApprovalService:
    def __init__(self, db: AsyncSession, *, account_service: AccountService | None = None):
        self.db = db
        self.account_service = account_service or AccountService(db)

    async def get_owner(self, owner_id: UUID | str) -> Account:
        account = await self.account_service.require(owner_id)
        if account.role != AccountRole.OWNER.value:
            raise ValidationError("not_an_owner", "User is not an owner")
        return account

    async def decide(
        self, owner_id: UUID | str, decision: str, notes: Optional[str] = None
    ) -> tuple[Account, DecisionNotice]:
        """Record an approval decision and return the notice to send.

        Raises:
            ValidationError: ``invalid_decision`` or ``not_an_owner``.
            NotFoundError: ``account_not_found``.
            ConflictError: ``already_decided`` for an owner that is not pending.
        """
        if decision not in DECISIONS:
            raise ValidationError("invalid_decision", "Status must be either approved or rejected", field="status")

        owner = await self.get_owner(owner_id)
        if owner.approval_status != ApprovalStatus.PENDING.value:
            raise ConflictError(
                "already_decided",
                f"Owner has already been {owner.approval_status}",
            )

        owner.approval_status = decision
        owner.is_approved_by_admin = decision == ApprovalStatus.APPROVED.value
        owner.approval_decided_at = utc_now()
        owner.approval_notes = notes or ""
        await self.db.commit()
        await self.db.refresh(owner)
        logger.info(f"Owner {owner.account_id} {decision}")

        notice = DecisionNotice(
            account_id=str(owner.account_id),
            email=owner.email,
            display_name=owner.display_name,
            business_name=owner.business_name or "",
            decision=decision,
            notes=owner.approval_notes,
        )
        return owner, notice

    async def list_owners(
        self, status: Optional[str] = None, page: int = 1, limit: Optional[int] = None
    ) -> tuple[list[Account], int]:
        if status is not None and status not in {s.value for s in ApprovalStatus}:
            raise ValidationError("invalid_status", "Unknown approval status", field="status")
        return await self.account_service.list_accounts(
            role=AccountRole.OWNER.value, approval_status=status, page=page, limit=limit
        )

    async def pending_owners(self) -> list[Account]:
        stmt = (
            select(Account)
            .where(Account.role == AccountRole.OWNER.value)
            .where(Account.approval_status == ApprovalStatus.PENDING.value)
            .order_by(Account.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
