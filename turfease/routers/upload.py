"""Image upload endpoints backed by the image host."""
import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile

from turfease.config import get_settings
from turfease.dependencies import get_current_account, get_image_host
from turfease.schemas.base import MessageResponse
from turfease.schemas.upload import (
    BatchUploadData,
    BatchUploadResponse,
    OptimizedUrlResponse,
    SingleUploadResponse,
    UploadedImage,
)
from turfease.services.errors import DependencyFailureError, ValidationError
from turfease.services.image_upload_service import ImageHost, UploadResult, new_public_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["upload"])
settings = get_settings()


def _image(result: UploadResult) -> UploadedImage:
    return UploadedImage(
        url=result.url,
        public_id=result.public_id,
        width=result.width,
        height=result.height,
        format=result.format,
        size=result.size,
        error=result.error,
    )


async def _read_image(upload: UploadFile) -> bytes:
    if not (upload.content_type or "").startswith("image/"):
        raise ValidationError("invalid_file_type", "Only image files are allowed", field="image")
    data = await upload.read(settings.upload_max_bytes + 1)
    if len(data) > settings.upload_max_bytes:
        raise ValidationError("file_too_large", "Image exceeds the maximum upload size", field="image")
    if not data:
        raise ValidationError("empty_file", "Please upload an image", field="image")
    return data


@router.post("/image", response_model=SingleUploadResponse, dependencies=[Depends(get_current_account)])
async def upload_image(
    image: UploadFile = File(...),
    image_host: ImageHost = Depends(get_image_host),
) -> SingleUploadResponse:
    data = await _read_image(image)
    result = await image_host.upload_image(data, "turfs", new_public_id())
    if not result.success:
        raise DependencyFailureError("upload_failed", result.error or "Failed to upload image")
    return SingleUploadResponse(data=_image(result))


@router.post("/images", response_model=BatchUploadResponse, dependencies=[Depends(get_current_account)])
async def upload_images(
    images: list[UploadFile] = File(...),
    image_host: ImageHost = Depends(get_image_host),
) -> BatchUploadResponse:
    if not images:
        raise ValidationError("missing_field", "Please upload at least one image", field="images")
    if len(images) > settings.upload_max_files:
        raise ValidationError(
            "too_many_files", f"Maximum {settings.upload_max_files} images allowed", field="images"
        )

    payloads = [await _read_image(image) for image in images]
    batch = await image_host.upload_images(payloads, "turfs")
    if not batch.success:
        raise DependencyFailureError("upload_failed", "Failed to upload images")
    return BatchUploadResponse(
        data=BatchUploadData(
            images=[_image(result) for result in batch.images],
            failed=[_image(result) for result in batch.failed],
            total_uploaded=len(batch.images),
            total_failed=len(batch.failed),
        )
    )


@router.delete("/image/{public_id:path}", response_model=MessageResponse,
               dependencies=[Depends(get_current_account)])
async def delete_image(public_id: str, image_host: ImageHost = Depends(get_image_host)) -> MessageResponse:
    result = await image_host.delete_image(public_id)
    if not result.success:
        raise DependencyFailureError("upload_failed", result.error or "Failed to delete image")
    return MessageResponse(message="Image deleted successfully")


@router.get("/optimize/{public_id:path}", response_model=OptimizedUrlResponse)
async def optimize_url(
    public_id: str,
    width: int | None = Query(default=None, ge=1, le=4000),
    height: int | None = Query(default=None, ge=1, le=4000),
    quality: str = Query(default="auto", pattern=r"^(auto|auto:\w+|\d{1,3})$"),
    format: str = Query(default="auto", pattern=r"^[a-z0-9]+$"),
    image_host: ImageHost = Depends(get_image_host),
) -> OptimizedUrlResponse:
    url = image_host.optimized_url(public_id, width=width, height=height, quality=quality, fetch_format=format)
    return OptimizedUrlResponse(url=url, public_id=public_id)
