"""Image upload schemas."""
from typing import Optional

from pydantic import BaseModel


class UploadedImage(BaseModel):
    url: Optional[str] = None
    public_id: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    size: Optional[int] = None
    error: Optional[str] = None


class SingleUploadResponse(BaseModel):
    success: bool = True
    data: UploadedImage


class BatchUploadData(BaseModel):
    images: list[UploadedImage]
    failed: list[UploadedImage]
    total_uploaded: int
    total_failed: int


class BatchUploadResponse(BaseModel):
    success: bool = True
    data: BatchUploadData


class OptimizedUrlResponse(BaseModel):
    success: bool = True
    url: str
    public_id: str
