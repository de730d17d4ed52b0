"""Signed-in user's own profile."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.database import get_db
from turfease.dependencies import get_current_account
from turfease.models.account import Account
from turfease.schemas.account import AccountResponse
from turfease.schemas.auth import ProfileUpdateRequest, SessionResponse
from turfease.services.account_service import AccountService

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile", response_model=SessionResponse)
async def get_profile(account: Account = Depends(get_current_account)) -> SessionResponse:
    return SessionResponse(account=AccountResponse.model_validate(account))


@router.put("/profile", response_model=SessionResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    updated = await AccountService(db).update_profile(account, request.model_dump(exclude_unset=True))
    return SessionResponse(account=AccountResponse.model_validate(updated))
