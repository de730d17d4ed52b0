"""Turf listing endpoints."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.database import get_db
from turfease.dependencies import (
    get_admin_account,
    get_approved_owner,
    get_image_host,
    get_owner_or_admin_account,
)
from turfease.models.account import Account
from turfease.schemas.base import MessageResponse
from turfease.schemas.turf import (
    NearbyTurfListResponse,
    NearbyTurfResponse,
    TurfCollectionResponse,
    TurfCreateRequest,
    TurfDetailResponse,
    TurfListResponse,
    TurfPagination,
    TurfResponse,
    TurfUpdateRequest,
)
from turfease.services.image_upload_service import ImageHost
from turfease.services.turf_service import TurfFilters, TurfService, pagination_links

router = APIRouter(prefix="/api/turfs", tags=["turfs"])
settings = get_settings()


@router.get("", response_model=TurfListResponse)
async def list_turfs(
    min_price: Optional[float] = Query(default=None, ge=0),
    max_price: Optional[float] = Query(default=None, ge=0),
    is_approved: Optional[bool] = None,
    owner_id: Optional[UUID] = None,
    search: Optional[str] = Query(default=None, max_length=100),
    sort: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=settings.turfs_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> TurfListResponse:
    filters = TurfFilters(
        min_price=min_price,
        max_price=max_price,
        is_approved=is_approved,
        owner_id=owner_id,
        search=search,
    )
    turfs, total = await TurfService(db).list_turfs(filters, sort=sort, page=page, limit=limit)
    return TurfListResponse(
        count=len(turfs),
        pagination=TurfPagination(page=page, limit=limit, total=total, **pagination_links(page, limit, total)),
        data=[TurfResponse.model_validate(turf) for turf in turfs],
    )


@router.get("/nearby", response_model=NearbyTurfListResponse)
async def nearby_turfs(
    lat: float,
    lng: float,
    distance: Optional[float] = Query(default=None, gt=0, description="Search radius in metres"),
    db: AsyncSession = Depends(get_db),
) -> NearbyTurfListResponse:
    matches = await TurfService(db).nearby(lat, lng, distance)
    data = [
        NearbyTurfResponse(**dict(TurfResponse.model_validate(turf)), distance_m=round(distance_m, 1))
        for turf, distance_m in matches
    ]
    return NearbyTurfListResponse(count=len(data), data=data)


@router.get("/mine", response_model=TurfCollectionResponse)
async def my_turfs(
    owner: Account = Depends(get_owner_or_admin_account),
    db: AsyncSession = Depends(get_db),
) -> TurfCollectionResponse:
    turfs = await TurfService(db).list_for_owner(owner.account_id)
    return TurfCollectionResponse(count=len(turfs), data=[TurfResponse.model_validate(t) for t in turfs])


@router.get("/{turf_id}", response_model=TurfDetailResponse)
async def get_turf(turf_id: UUID, db: AsyncSession = Depends(get_db)) -> TurfDetailResponse:
    turf = await TurfService(db).get(turf_id)
    return TurfDetailResponse(data=TurfResponse.model_validate(turf))


@router.post("", response_model=TurfDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_turf(
    request: TurfCreateRequest,
    owner: Account = Depends(get_approved_owner),
    db: AsyncSession = Depends(get_db),
    image_host: ImageHost = Depends(get_image_host),
) -> TurfDetailResponse:
    turf = await TurfService(db, image_host).create(owner, request.to_service_data())
    return TurfDetailResponse(
        message=f"Turf created successfully with {len(turf.images)} images",
        data=TurfResponse.model_validate(turf),
    )


@router.put("/{turf_id}", response_model=TurfDetailResponse)
async def update_turf(
    turf_id: UUID,
    request: TurfUpdateRequest,
    actor: Account = Depends(get_owner_or_admin_account),
    db: AsyncSession = Depends(get_db),
    image_host: ImageHost = Depends(get_image_host),
) -> TurfDetailResponse:
    changes = request.to_service_changes()
    turf = await TurfService(db, image_host).update(turf_id, actor, changes)
    message = "Turf updated successfully with new images" if changes.get("images") else "Turf updated successfully"
    return TurfDetailResponse(message=message, data=TurfResponse.model_validate(turf))


@router.delete("/{turf_id}", response_model=MessageResponse)
async def delete_turf(
    turf_id: UUID,
    actor: Account = Depends(get_owner_or_admin_account),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await TurfService(db).delete(turf_id, actor)
    return MessageResponse(message="Turf deleted")


@router.put("/{turf_id}/approve", response_model=TurfDetailResponse)
async def approve_turf(
    turf_id: UUID,
    admin: Account = Depends(get_admin_account),
    db: AsyncSession = Depends(get_db),
) -> TurfDetailResponse:
    turf = await TurfService(db).approve(turf_id)
    return TurfDetailResponse(message="Turf approved", data=TurfResponse.model_validate(turf))
