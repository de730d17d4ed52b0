"""Administrator endpoints: account listing and owner approval."""
import logging
import math
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.database import get_db
from turfease.dependencies import get_admin_account, get_notifier
from turfease.models.account import Account
from turfease.schemas.account import (
    AccountListResponse,
    AccountResponse,
    OwnerListResponse,
    OwnerResponse,
)
from turfease.schemas.admin import (
    ApprovalDecisionRequest,
    ApprovalDecisionResponse,
    PendingOwnersResponse,
)
from turfease.schemas.base import PageLink, Pagination
from turfease.services.account_service import AccountService
from turfease.services.approval_service import ApprovalService, send_decision_notice
from turfease.services.notification_service import Notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(get_admin_account)])
settings = get_settings()


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
        next=PageLink(page=page + 1, limit=limit) if page * limit < total else None,
        prev=PageLink(page=page - 1, limit=limit) if page > 1 else None,
    )


@router.get("/users", response_model=AccountListResponse)
async def list_users(
    role: Optional[str] = Query(default=None, pattern="^(player|owner|admin)$"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.admin_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> AccountListResponse:
    accounts, total = await AccountService(db).list_accounts(role=role, page=page, limit=limit)
    return AccountListResponse(
        accounts=[AccountResponse.model_validate(account) for account in accounts],
        pagination=_pagination(page, limit, total),
    )


@router.get("/pending-owners", response_model=PendingOwnersResponse)
async def pending_owners(db: AsyncSession = Depends(get_db)) -> PendingOwnersResponse:
    owners = await ApprovalService(db).pending_owners()
    return PendingOwnersResponse(
        count=len(owners),
        owners=[OwnerResponse.model_validate(owner) for owner in owners],
    )


@router.get("/owners", response_model=OwnerListResponse)
async def list_owners(
    status: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.admin_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> OwnerListResponse:
    owners, total = await ApprovalService(db).list_owners(status=status, page=page, limit=limit)
    return OwnerListResponse(
        owners=[OwnerResponse.model_validate(owner) for owner in owners],
        pagination=_pagination(page, limit, total),
    )


@router.get("/owners/{owner_id}", response_model=OwnerResponse)
async def get_owner(owner_id: UUID, db: AsyncSession = Depends(get_db)) -> OwnerResponse:
    return OwnerResponse.model_validate(await ApprovalService(db).get_owner(owner_id))


@router.put("/owners/{owner_id}/approval", response_model=ApprovalDecisionResponse)
async def decide_owner(
    owner_id: UUID,
    request: ApprovalDecisionRequest,
    background_tasks: BackgroundTasks,
    admin: Account = Depends(get_admin_account),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ApprovalDecisionResponse:
    """Approve or reject a pending owner; the owner is emailed after the response."""
    owner, notice = await ApprovalService(db).decide(owner_id, request.status, request.notes)
    logger.info(f"Admin {admin.account_id} marked owner {owner.account_id} as {notice.decision}")
    background_tasks.add_task(send_decision_notice, notifier, notice)
    return ApprovalDecisionResponse(
        message=f"Owner {notice.decision} successfully",
        owner=OwnerResponse.model_validate(owner),
    )
