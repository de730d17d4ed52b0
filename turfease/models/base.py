"""Base utilities for SQLAlchemy models."""
from enum import Enum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes


class AccountRole(str, Enum):
    """Account role enumeration for type safety."""
    PLAYER = "player"
    OWNER = "owner"
    ADMIN = "admin"


class ApprovalStatus(str, Enum):
    """Owner approval status enumeration for type safety."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SkillLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    PROFESSIONAL = "Professional"


class Sport(str, Enum):
    FOOTBALL = "Football"
    CRICKET = "Cricket"
    BASKETBALL = "Basketball"
    TENNIS = "Tennis"
    BADMINTON = "Badminton"
    VOLLEYBALL = "Volleyball"


class TurfCount(str, Enum):
    ONE = "1"
    TWO_TO_FIVE = "2-5"
    SIX_TO_TEN = "6-10"
    MORE_THAN_TEN = "10+"


class AdaptiveUUID(sqltypes.TypeDecorator):
    """UUID type stored natively on PostgreSQL and as 32-char hex elsewhere."""

    impl = sqltypes.String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    @staticmethod
    def _coerce_uuid(value):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        value = self._coerce_uuid(value)
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return value.hex

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._coerce_uuid(value)


def get_uuid_column(*args, **kwargs):
    """Get a UUID column that adapts to the database dialect at runtime.

    Example:
        account_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        owner_id = get_uuid_column(ForeignKey("accounts.account_id"), nullable=False)
    """
    return Column(AdaptiveUUID(), *args, **kwargs)
