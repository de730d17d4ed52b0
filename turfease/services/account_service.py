"""Account persistence and the role-driven account factory."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.models.account import Account, PLACEHOLDER_PHONE
from turfease.models.base import AccountRole, ApprovalStatus, SkillLevel, Sport, TurfCount
from turfease.services.errors import ConflictError, NotFoundError, ValidationError
from turfease.utils.datetime_helpers import utc_now
from turfease.utils.passwords import (
    PasswordValidationError,
    hash_password,
    validate_password_strength,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")
PHONE_PATTERN = re.compile(r"^[0-9+\-\s()]+$")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def canonicalize_username(username: str) -> str:
    return username.strip().lower()


@dataclass(frozen=True)
class InitialState:
    """Lifecycle fields every new account starts with."""

    role: str
    approval_status: str
    is_approved_by_admin: bool
    is_email_verified: bool = False
    is_active: bool = True
    is_blocked: bool = False


def initial_state_for(role: AccountRole | str, *, email_verified: bool = False) -> InitialState:
    """Compute the whole initial lifecycle tuple from the role.

    Owners wait for an administrator; every other role is approved up front.
    """
    role = AccountRole(role)
    if role == AccountRole.OWNER:
        return InitialState(
            role=role.value,
            approval_status=ApprovalStatus.PENDING.value,
            is_approved_by_admin=False,
            is_email_verified=email_verified,
        )
    return InitialState(
        role=role.value,
        approval_status=ApprovalStatus.APPROVED.value,
        is_approved_by_admin=True,
        is_email_verified=email_verified,
    )


def new_account(
    role: AccountRole | str,
    *,
    email: str,
    password_hash: str,
    first_name: str,
    last_name: str = "",
    phone: str = PLACEHOLDER_PHONE,
    username: Optional[str] = None,
    email_verified: bool = False,
    **profile: Any,
) -> Account:
    """Build an unsaved Account whose lifecycle fields all derive from ``role``."""
    state = initial_state_for(role, email_verified=email_verified)
    account = Account(
        email=normalize_email(email),
        password_hash=password_hash,
        first_name=first_name.strip(),
        last_name=(last_name or "").strip(),
        phone=phone,
        role=state.role,
        approval_status=state.approval_status,
        is_approved_by_admin=state.is_approved_by_admin,
        is_email_verified=state.is_email_verified,
        email_verified_at=utc_now() if state.is_email_verified else None,
        is_active=state.is_active,
        is_blocked=state.is_blocked,
        preferred_sports=list(profile.pop("preferred_sports", None) or []),
        avatar=profile.pop("avatar", None) or "",
        **profile,
    )
    if username:
        account.username = username.strip()
        account.username_canonical = canonicalize_username(username)
    return account


@dataclass
class RegistrationData:
    first_name: str
    last_name: str
    email: str
    phone: str
    password: str
    role: str
    agree_to_terms: bool
    agree_to_marketing: bool = False
    username: Optional[str] = None
    preferred_sports: Optional[list[str]] = None
    skill_level: Optional[str] = None
    location: Optional[str] = None
    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    turf_count: Optional[str] = None


def _require(value: Optional[str], field: str, message: str) -> None:
    if not value or not str(value).strip():
        raise ValidationError("missing_field", message, field=field)


def validate_registration(data: RegistrationData) -> None:
    """Field rules for self-service sign-up.

    Phone numbers are format-checked only; they are not unique.
    """
    for field, value in (("first_name", data.first_name), ("last_name", data.last_name)):
        if not value or not 2 <= len(value.strip()) <= 50:
            raise ValidationError("invalid_name", f"{field} must be 2-50 characters", field=field)

    if not EMAIL_PATTERN.match(normalize_email(data.email)):
        raise ValidationError("invalid_email", "Please provide a valid email", field="email")

    if not data.phone or not PHONE_PATTERN.match(data.phone):
        raise ValidationError("invalid_phone", "Please provide a valid phone number", field="phone")

    try:
        validate_password_strength(data.password)
    except PasswordValidationError as exc:
        raise ValidationError("weak_password", str(exc), field="password") from exc

    if data.role not in (AccountRole.PLAYER.value, AccountRole.OWNER.value):
        raise ValidationError("invalid_role", "Role must be player or owner", field="role")

    if not data.agree_to_terms:
        raise ValidationError("terms_not_accepted", "You must agree to the terms", field="agree_to_terms")

    if data.username is not None and not USERNAME_PATTERN.match(data.username.strip()):
        raise ValidationError(
            "invalid_username",
            "Username must be 3-30 letters, numbers or underscores",
            field="username",
        )

    if data.role == AccountRole.PLAYER.value:
        if not data.preferred_sports:
            raise ValidationError("missing_field", "Select at least one sport", field="preferred_sports")
        allowed_sports = {sport.value for sport in Sport}
        unknown = [sport for sport in data.preferred_sports if sport not in allowed_sports]
        if unknown:
            raise ValidationError("invalid_sport", f"Unknown sports: {', '.join(unknown)}", field="preferred_sports")
        if data.skill_level not in {level.value for level in SkillLevel}:
            raise ValidationError("invalid_skill_level", "Select a valid skill level", field="skill_level")
        _require(data.location, "location", "Location is required")
    else:
        _require(data.business_name, "business_name", "Business name is required")
        if len(data.business_name.strip()) > 100:
            raise ValidationError("invalid_business_name", "Business name cannot exceed 100 characters",
                                  field="business_name")
        _require(data.business_address, "business_address", "Business address is required")
        _require(data.business_phone, "business_phone", "Business phone is required")
        if not PHONE_PATTERN.match(data.business_phone):
            raise ValidationError("invalid_phone", "Please provide a valid business phone",
                                  field="business_phone")
        if data.turf_count not in {count.value for count in TurfCount}:
            raise ValidationError("invalid_turf_count", "Select a valid turf count", field="turf_count")


UNIQUE_COLUMN_ERRORS = {
    "email": ("email_taken", "User already exists with this email"),
    "username_canonical": ("username_taken", "Username is already in use"),
    "firebase_uid": ("identity_already_linked", "This sign-in is linked to another account"),
}

PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "preferred_sports",
    "skill_level",
    "location",
    "avatar",
)


class AccountService:
    """CRUD over Account records."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def get_by_id(self, account_id: UUID | str) -> Optional[Account]:
        try:
            account_uuid = account_id if isinstance(account_id, UUID) else UUID(str(account_id))
        except ValueError:
            return None
        result = await self.db.execute(select(Account).where(Account.account_id == account_uuid))
        return result.scalars().first()

    async def require(self, account_id: UUID | str) -> Account:
        account = await self.get_by_id(account_id)
        if not account:
            raise NotFoundError("account_not_found", "Account not found")
        return account

    async def get_by_email(self, email: str) -> Optional[Account]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        result = await self.db.execute(select(Account).where(Account.email == normalized))
        return result.scalars().first()

    async def get_by_username(self, username: str) -> Optional[Account]:
        if not username or not username.strip():
            return None
        stmt = select(Account).where(Account.username_canonical == canonicalize_username(username))
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_by_firebase_uid(self, firebase_uid: str) -> Optional[Account]:
        result = await self.db.execute(select(Account).where(Account.firebase_uid == firebase_uid))
        return result.scalars().first()

    async def create_account(self, account: Account) -> Account:
        """Insert a new account, enforcing unique email and username.

        The pre-checks give a friendly error; the unique indexes decide races.
        """
        if await self.get_by_email(account.email):
            raise ConflictError("email_taken", "User already exists with this email")
        if account.username_canonical and await self.get_by_username(account.username_canonical):
            raise ConflictError("username_taken", "Username is already in use")

        self.db.add(account)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self._handle_integrity_error(exc)
        await self.db.refresh(account)
        logger.info(f"Created {account.role} account {account.account_id}")
        return account

    async def register(self, data: RegistrationData) -> Account:
        validate_registration(data)
        profile: dict[str, Any] = {
            "agree_to_terms": data.agree_to_terms,
            "agree_to_marketing": data.agree_to_marketing,
        }
        if data.role == AccountRole.PLAYER.value:
            profile.update(
                preferred_sports=data.preferred_sports,
                skill_level=data.skill_level,
                location=data.location.strip(),
            )
        else:
            profile.update(
                business_name=data.business_name.strip(),
                business_address=data.business_address.strip(),
                business_phone=data.business_phone.strip(),
                turf_count=data.turf_count,
            )
        account = new_account(
            data.role,
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone.strip(),
            username=data.username,
            **profile,
        )
        return await self.create_account(account)

    async def update_profile(self, account: Account, changes: dict[str, Any]) -> Account:
        """Apply the non-empty profile fields in ``changes``."""
        sports = changes.get("preferred_sports")
        if sports:
            unknown = [sport for sport in sports if sport not in {s.value for s in Sport}]
            if unknown:
                raise ValidationError("invalid_sport", f"Unknown sports: {', '.join(unknown)}",
                                      field="preferred_sports")
        skill_level = changes.get("skill_level")
        if skill_level and skill_level not in {level.value for level in SkillLevel}:
            raise ValidationError("invalid_skill_level", "Select a valid skill level", field="skill_level")

        for field in PROFILE_FIELDS:
            if field in changes and changes[field] is not None:
                setattr(account, field, changes[field])
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def touch_last_login(self, account: Account) -> Account:
        account.last_login_at = utc_now()
        await self.db.commit()
        await self.db.refresh(account)
        return account

    async def delete_account(self, account_id: UUID) -> None:
        """Hard delete; only used to roll back a registration that could not be completed."""
        await self.db.execute(delete(Account).where(Account.account_id == account_id))
        await self.db.commit()
        logger.info(f"Deleted account {account_id}")

    async def list_accounts(
        self,
        *,
        role: Optional[str] = None,
        approval_status: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> tuple[list[Account], int]:
        """Newest first, with the total count for pagination."""
        limit = limit or self.settings.admin_page_size
        filters = []
        if role:
            filters.append(Account.role == role)
        if approval_status:
            filters.append(Account.approval_status == approval_status)

        total = await self.db.scalar(select(func.count()).select_from(Account).where(*filters))
        stmt = (
            select(Account)
            .where(*filters)
            .order_by(Account.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), int(total or 0)

    async def _handle_integrity_error(self, exc: IntegrityError) -> None:
        await self.db.rollback()
        # Only the driver message; the wrapped SQL names every column
        error_message = str(exc.orig).lower()
        for column, (code, message) in UNIQUE_COLUMN_ERRORS.items():
            markers = (f"accounts.{column}", f"accounts_{column}_key", f"uq_accounts_{column}")
            if any(marker in error_message for marker in markers):
                raise ConflictError(code, message) from exc
        raise exc
