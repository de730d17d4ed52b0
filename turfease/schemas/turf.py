"""Turf listing schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from turfease.schemas.base import BaseSchema, PageLink


class Coordinates(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class TurfLocation(BaseModel):
    address: str = Field(min_length=1, max_length=255)
    coordinates: Coordinates


class TurfCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    location: TurfLocation
    price_per_hour: float = Field(ge=0)
    # Data URIs, base64 payloads or remote URLs handed to the image host
    images: list[str] = Field(default_factory=list)

    def to_service_data(self) -> dict:
        return {
            "name": self.name,
            "address": self.location.address,
            "latitude": self.location.coordinates.lat,
            "longitude": self.location.coordinates.lng,
            "price_per_hour": self.price_per_hour,
            "images": self.images,
        }


class TurfUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    location: Optional[TurfLocation] = None
    price_per_hour: Optional[float] = None
    images: Optional[list[str]] = None

    def to_service_changes(self) -> dict:
        changes = self.model_dump(exclude_unset=True, exclude={"location"})
        if self.location is not None:
            changes.update(
                address=self.location.address,
                latitude=self.location.coordinates.lat,
                longitude=self.location.coordinates.lng,
            )
        return changes


class TurfResponse(BaseSchema):
    turf_id: UUID
    owner_id: UUID
    name: str
    address: str
    latitude: float
    longitude: float
    price_per_hour: float
    formatted_price: str
    images: list[str]
    is_approved: bool
    created_at: datetime
    updated_at: datetime


class NearbyTurfResponse(TurfResponse):
    distance_m: float


class TurfPagination(BaseModel):
    page: int
    limit: int
    total: int
    next: Optional[PageLink] = None
    prev: Optional[PageLink] = None


class TurfListResponse(BaseModel):
    success: bool = True
    count: int
    pagination: TurfPagination
    data: list[TurfResponse]


class TurfCollectionResponse(BaseModel):
    success: bool = True
    count: int
    data: list[TurfResponse]


class NearbyTurfListResponse(BaseModel):
    success: bool = True
    count: int
    data: list[NearbyTurfResponse]


class TurfDetailResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: TurfResponse
