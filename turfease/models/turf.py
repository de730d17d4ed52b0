"""Turf listing model."""
from sqlalchemy import (
    Column,
    String,
    Float,
    Boolean,
    DateTime,
    ForeignKey,
    JSON,
    Index,
)
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, UTC
from turfease.database import Base
from turfease.models.base import get_uuid_column


class Turf(Base):
    """A bookable sports turf listed by an owner."""

    __tablename__ = "turfs"

    turf_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    owner_id = get_uuid_column(ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    address = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    price_per_hour = Column(Float, nullable=False)
    images = Column(JSON, nullable=False, default=list)
    is_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    owner = relationship("Account", back_populates="turfs")

    __table_args__ = (
        Index("ix_turfs_lat_lng", "latitude", "longitude"),
    )

    @property
    def formatted_price(self) -> str:
        return f"₹{self.price_per_hour:g}/hour"

    def __repr__(self):
        return f"<Turf(turf_id={self.turf_id}, name={self.name}, owner_id={self.owner_id})>"
