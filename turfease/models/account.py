"""Account model."""
from sqlalchemy import (
    Column,
    String,
    DateTime,
    Boolean,
    JSON,
    Text,
)
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from turfease.database import Base
from turfease.models.base import get_uuid_column, AccountRole, ApprovalStatus

PLACEHOLDER_PHONE = "0000000000"


class Account(Base):
    """Persisted user record for players, turf owners and administrators."""

    __tablename__ = "accounts"

    account_id = get_uuid_column(primary_key=True, default=uuid.uuid4)

    # Identity
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(30), nullable=True)
    username_canonical = Column(String(30), unique=True, nullable=True)
    firebase_uid = Column(String(128), unique=True, nullable=True)

    # Credentials
    password_hash = Column(String(255), nullable=False)
    reset_password_token_hash = Column(String(64), nullable=True, index=True)
    reset_password_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Profile
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False, default="")
    phone = Column(String(30), nullable=False, default=PLACEHOLDER_PHONE)
    avatar = Column(String(500), nullable=False, default="")
    preferred_sports = Column(JSON, nullable=False, default=list)
    skill_level = Column(String(20), nullable=True)
    location = Column(String(255), nullable=True)

    # Owner details
    business_name = Column(String(100), nullable=True)
    business_address = Column(String(255), nullable=True)
    business_phone = Column(String(30), nullable=True)
    turf_count = Column(String(10), nullable=True)

    # Role and lifecycle state
    role = Column(String(10), nullable=False, index=True)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    approval_status = Column(String(10), nullable=False, index=True)
    is_approved_by_admin = Column(Boolean, nullable=False)
    approval_decided_at = Column(DateTime(timezone=True), nullable=True)
    approval_notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)

    agree_to_terms = Column(Boolean, default=False, nullable=False)
    agree_to_marketing = Column(Boolean, default=False, nullable=False)

    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    refresh_tokens = relationship(
        "RefreshToken", back_populates="account", cascade="all, delete-orphan", passive_deletes=True
    )
    turfs = relationship("Turf", back_populates="owner", cascade="all, delete-orphan", passive_deletes=True)

    @property
    def is_owner(self) -> bool:
        return self.role == AccountRole.OWNER.value

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN.value

    @property
    def display_name(self) -> str:
        return self.first_name or self.email.split("@")[0]

    @property
    def needs_profile_completion(self) -> bool:
        """Federated sign-ups start with a placeholder phone and no sports."""
        return not self.phone or self.phone == PLACEHOLDER_PHONE or not self.preferred_sports

    @property
    def is_pending_approval(self) -> bool:
        return self.approval_status == ApprovalStatus.PENDING.value or not self.is_approved_by_admin

    def __repr__(self):
        return (f"<{self.__class__.__name__}(account_id={self.account_id}, email={self.email}, "
                f"role={self.role}, approval_status={self.approval_status})>")
