"""Turf listings: CRUD, filtered listing and nearby search."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.models.account import Account
from turfease.models.turf import Turf
from turfease.services.errors import (
    DependencyFailureError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from turfease.services.image_upload_service import ImageHost
from turfease.utils.geo import bounding_box, haversine_m, valid_coordinates

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "created_at": Turf.created_at,
    "updated_at": Turf.updated_at,
    "name": Turf.name,
    "price_per_hour": Turf.price_per_hour,
}
DEFAULT_SORT = "-created_at"
UPDATABLE_FIELDS = ("name", "address", "latitude", "longitude", "price_per_hour")


@dataclass
class TurfFilters:
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    is_approved: Optional[bool] = None
    owner_id: Optional[UUID] = None
    search: Optional[str] = None

    def clauses(self) -> list:
        clauses = []
        if self.min_price is not None:
            clauses.append(Turf.price_per_hour >= self.min_price)
        if self.max_price is not None:
            clauses.append(Turf.price_per_hour <= self.max_price)
        if self.is_approved is not None:
            clauses.append(Turf.is_approved.is_(self.is_approved))
        if self.owner_id is not None:
            clauses.append(Turf.owner_id == self.owner_id)
        if self.search:
            clauses.append(func.lower(Turf.name).contains(self.search.strip().lower()))
        return clauses


def parse_sort(sort: Optional[str]) -> list:
    """Turn ``"-price_per_hour,name"`` into ORDER BY clauses over whitelisted columns."""
    order_by = []
    for raw in (sort or DEFAULT_SORT).split(","):
        key = raw.strip()
        if not key:
            continue
        descending = key.startswith("-")
        column = SORT_FIELDS.get(key.lstrip("-+"))
        if column is None:
            raise ValidationError("invalid_sort", f"Cannot sort by {key.lstrip('-+')}", field="sort")
        order_by.append(column.desc() if descending else column.asc())
    return order_by or [Turf.created_at.desc()]


def pagination_links(page: int, limit: int, total: int) -> dict[str, dict[str, int]]:
    links = {}
    if page * limit < total:
        links["next"] = {"page": page + 1, "limit": limit}
    if page > 1:
        links["prev"] = {"page": page - 1, "limit": limit}
    return links


def _check_location(latitude: Any, longitude: Any) -> None:
    if latitude is None or longitude is None or not valid_coordinates(float(latitude), float(longitude)):
        raise ValidationError("invalid_coordinates", "Invalid coordinates", field="location")


class TurfService:
    def __init__(self, db: AsyncSession, image_host: ImageHost | None = None):
        self.db = db
        self.image_host = image_host
        self.settings = get_settings()

    async def get(self, turf_id: UUID | str) -> Turf:
        try:
            turf_uuid = turf_id if isinstance(turf_id, UUID) else UUID(str(turf_id))
        except ValueError as exc:
            raise NotFoundError("turf_not_found", f"Turf not found with id of {turf_id}") from exc
        turf = await self.db.get(Turf, turf_uuid)
        if not turf:
            raise NotFoundError("turf_not_found", f"Turf not found with id of {turf_id}")
        return turf

    async def list_turfs(
        self,
        filters: TurfFilters | None = None,
        sort: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> tuple[list[Turf], int]:
        filters = filters or TurfFilters()
        limit = limit or self.settings.turfs_page_size
        clauses = filters.clauses()
        order_by = parse_sort(sort)

        total = await self.db.scalar(select(func.count()).select_from(Turf).where(*clauses))
        stmt = select(Turf).where(*clauses).order_by(*order_by).offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), int(total or 0)

    async def list_for_owner(self, owner_id: UUID) -> list[Turf]:
        stmt = select(Turf).where(Turf.owner_id == owner_id).order_by(Turf.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def nearby(self, lat: float, lng: float, distance_m: Optional[float] = None) -> list[tuple[Turf, float]]:
        """Approved turfs within ``distance_m`` metres, nearest first."""
        _check_location(lat, lng)
        distance_m = distance_m if distance_m is not None else self.settings.nearby_default_distance_m
        if distance_m <= 0:
            raise ValidationError("invalid_distance", "Distance must be positive", field="distance")

        min_lat, max_lat, min_lng, max_lng = bounding_box(lat, lng, distance_m)
        stmt = (
            select(Turf)
            .where(Turf.is_approved.is_(True))
            .where(Turf.latitude.between(min_lat, max_lat))
            .where(Turf.longitude.between(min_lng, max_lng))
        )
        result = await self.db.execute(stmt)

        matches = []
        for turf in result.scalars().all():
            distance = haversine_m(lat, lng, turf.latitude, turf.longitude)
            if distance <= distance_m:
                matches.append((turf, distance))
        matches.sort(key=lambda item: item[1])
        return matches

    async def _upload(self, images: list[str]) -> list[str]:
        if self.image_host is None:
            raise DependencyFailureError("upload_failed", "Image host is not available")
        batch = await self.image_host.upload_images(images, folder="turfs")
        if not batch.success:
            raise DependencyFailureError("upload_failed", "No images were uploaded successfully")
        return batch.urls

    async def create(self, owner: Account, data: dict[str, Any]) -> Turf:
        _check_location(data.get("latitude"), data.get("longitude"))
        if data.get("price_per_hour") is None or data["price_per_hour"] < 0:
            raise ValidationError("invalid_price", "Valid price per hour is required", field="price_per_hour")
        images = data.get("images") or []
        if not images:
            raise ValidationError("images_required", "At least one image is required", field="images")

        image_urls = await self._upload(images)
        turf = Turf(
            owner_id=owner.account_id,
            name=data["name"].strip(),
            address=data["address"].strip(),
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            price_per_hour=float(data["price_per_hour"]),
            images=image_urls,
            is_approved=False,
        )
        self.db.add(turf)
        await self.db.commit()
        await self.db.refresh(turf)
        logger.info(f"Owner {owner.account_id} created turf {turf.turf_id} with {len(image_urls)} images")
        return turf

    def _require_control(self, turf: Turf, actor: Account, action: str) -> None:
        if turf.owner_id != actor.account_id and not actor.is_admin:
            raise UnauthorizedError(
                "not_turf_owner", f"User {actor.account_id} is not authorized to {action} this turf"
            )

    async def update(self, turf_id: UUID | str, actor: Account, changes: dict[str, Any]) -> Turf:
        turf = await self.get(turf_id)
        self._require_control(turf, actor, "update")

        if "latitude" in changes or "longitude" in changes:
            _check_location(changes.get("latitude", turf.latitude), changes.get("longitude", turf.longitude))
        if changes.get("price_per_hour") is not None and changes["price_per_hour"] < 0:
            raise ValidationError("invalid_price", "Price cannot be negative", field="price_per_hour")

        if changes.get("images"):
            turf.images = await self._upload(changes["images"])
        for field in UPDATABLE_FIELDS:
            if changes.get(field) is not None:
                setattr(turf, field, changes[field])

        await self.db.commit()
        await self.db.refresh(turf)
        return turf

    async def delete(self, turf_id: UUID | str, actor: Account) -> None:
        turf = await self.get(turf_id)
        self._require_control(turf, actor, "delete")
        await self.db.delete(turf)
        await self.db.commit()
        logger.info(f"Turf {turf.turf_id} deleted by {actor.account_id}")

    async def approve(self, turf_id: UUID | str) -> Turf:
        turf = await self.get(turf_id)
        turf.is_approved = True
        await self.db.commit()
        await self.db.refresh(turf)
        logger.info(f"Turf {turf.turf_id} approved")
        return turf
