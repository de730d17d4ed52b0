"""Account response schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from turfease.schemas.base import BaseSchema, Pagination


class AccountResponse(BaseSchema):
    """Public view of an account; credentials are never included."""

    account_id: UUID
    first_name: str
    last_name: str
    email: str
    username: Optional[str] = None
    role: str
    phone: str
    avatar: str = ""
    is_email_verified: bool
    is_approved_by_admin: bool
    approval_status: str
    preferred_sports: list[str] = []
    skill_level: Optional[str] = None
    location: Optional[str] = None
    needs_profile_completion: bool
    is_active: bool
    is_blocked: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None


class OwnerResponse(AccountResponse):
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    turf_count: Optional[str] = None
    approval_decided_at: Optional[datetime] = None
    approval_notes: Optional[str] = None


class AccountListResponse(BaseSchema):
    accounts: list[AccountResponse]
    pagination: Pagination


class OwnerListResponse(BaseSchema):
    owners: list[OwnerResponse]
    pagination: Pagination
