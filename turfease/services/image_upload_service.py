"""Turf image hosting on Cloudinary via its REST upload API."""
from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

import aiohttp
from aiohttp import ClientError, ClientTimeout

from turfease.config import get_settings

logger = logging.getLogger(__name__)

ImageData = Union[bytes, str]

API_BASE = "https://api.cloudinary.com/v1_1"
DELIVERY_BASE = "https://res.cloudinary.com"


@dataclass(frozen=True)
class UploadResult:
    success: bool
    url: Optional[str] = None
    public_id: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None
    size: Optional[int] = None
    error: Optional[str] = None
    placeholder: bool = False


@dataclass
class BatchUploadResult:
    images: list[UploadResult] = field(default_factory=list)
    failed: list[UploadResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return bool(self.images)

    @property
    def urls(self) -> list[str]:
        return [image.url for image in self.images if image.url]


class ImageHost(Protocol):
    async def upload_image(self, data: ImageData, folder: str = "turfs",
                           public_id: Optional[str] = None) -> UploadResult: ...

    async def upload_images(self, images: list[ImageData], folder: str = "turfs") -> BatchUploadResult: ...

    async def delete_image(self, public_id: str) -> UploadResult: ...

    def optimized_url(self, public_id: str, width: Optional[int] = None, height: Optional[int] = None,
                      quality: str = "auto", fetch_format: str = "auto", crop: Optional[str] = None) -> str: ...


def sign_params(params: dict[str, object], api_secret: str) -> str:
    """Cloudinary signature: SHA-1 of the sorted ``key=value`` pairs plus the secret."""
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def new_public_id(prefix: str = "turf") -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def error_message(payload: Any, status: int) -> str:
    """Pull Cloudinary's error text out of a response body of any shape."""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    elif isinstance(payload, str) and payload.strip():
        return payload.strip()
    return f"HTTP {status}"


class CloudinaryImageHost:
    """Uploads and deletes images; failures come back as ``UploadResult`` values.

    Without Cloudinary credentials in development, uploads return
    deterministic placeholder images instead of calling the network.
    """

    def __init__(self, settings=None):
        self.settings = settings or get_settings()
        self.timeout = ClientTimeout(total=self.settings.upload_timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def use_placeholders(self) -> bool:
        return not self.settings.cloudinary_configured and self.settings.is_development

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            logger.debug("Created new aiohttp session for image host")
        return self._session

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("Closed aiohttp session for image host")
            self._session = None

    def _signed(self, params: dict[str, object]) -> dict[str, object]:
        params = {key: value for key, value in params.items() if value not in (None, "")}
        params["timestamp"] = int(time.time())
        signature = sign_params(params, self.settings.cloudinary_api_secret)
        return {**params, "api_key": self.settings.cloudinary_api_key, "signature": signature}

    def _placeholder(self, folder: str, public_id: str) -> UploadResult:
        seed = hashlib.sha1(public_id.encode("utf-8")).hexdigest()[:12]
        return UploadResult(
            success=True,
            url=f"https://picsum.photos/seed/{seed}/800/600",
            public_id=f"{folder}/{public_id}",
            width=800,
            height=600,
            format="jpg",
            placeholder=True,
        )

    async def upload_image(self, data: ImageData, folder: str = "turfs",
                           public_id: Optional[str] = None) -> UploadResult:
        public_id = public_id or new_public_id()
        if self.use_placeholders:
            logger.info(f"Cloudinary not configured, returning placeholder for {public_id}")
            return self._placeholder(folder, public_id)
        if not self.settings.cloudinary_configured:
            return UploadResult(success=False, error="image_host_not_configured")
        if not data:
            return UploadResult(success=False, error="empty_image")

        form = aiohttp.FormData()
        for key, value in self._signed({"folder": folder, "public_id": public_id}).items():
            form.add_field(key, str(value))
        if isinstance(data, bytes):
            form.add_field("file", data, filename=public_id, content_type="application/octet-stream")
        else:
            form.add_field("file", data)

        url = f"{API_BASE}/{self.settings.cloudinary_cloud_name}/image/upload"
        session = await self._ensure_session()
        try:
            async with session.post(url, data=form) as response:
                payload = await response.json(content_type=None)
                if response.status != 200 or not isinstance(payload, dict):
                    message = error_message(payload, response.status)
                    logger.error(f"Cloudinary upload failed for {public_id}: {message}")
                    return UploadResult(success=False, error=message)
        except asyncio.TimeoutError:
            logger.error(f"Cloudinary upload timed out for {public_id}")
            return UploadResult(success=False, error="timeout")
        except (ClientError, ValueError) as e:
            logger.error(f"Cloudinary upload error for {public_id}: {e}")
            return UploadResult(success=False, error=str(e))

        return UploadResult(
            success=True,
            url=payload.get("secure_url"),
            public_id=payload.get("public_id"),
            width=payload.get("width"),
            height=payload.get("height"),
            format=payload.get("format"),
            size=payload.get("bytes"),
        )

    async def upload_images(self, images: list[ImageData], folder: str = "turfs") -> BatchUploadResult:
        """Upload concurrently; partial success is reported, not raised."""
        results = await asyncio.gather(
            *(self.upload_image(image, folder, new_public_id(f"turf_{index}")) for index, image in enumerate(images))
        )
        batch = BatchUploadResult()
        for result in results:
            (batch.images if result.success else batch.failed).append(result)
        if batch.failed:
            logger.warning(f"{len(batch.failed)} of {len(images)} images failed to upload")
        return batch

    async def delete_image(self, public_id: str) -> UploadResult:
        if self.use_placeholders:
            return UploadResult(success=True, public_id=public_id, placeholder=True)
        if not self.settings.cloudinary_configured:
            return UploadResult(success=False, public_id=public_id, error="image_host_not_configured")

        url = f"{API_BASE}/{self.settings.cloudinary_cloud_name}/image/destroy"
        session = await self._ensure_session()
        try:
            async with session.post(url, data=self._signed({"public_id": public_id})) as response:
                payload = await response.json(content_type=None)
        except asyncio.TimeoutError:
            logger.error(f"Cloudinary delete timed out for {public_id}")
            return UploadResult(success=False, public_id=public_id, error="timeout")
        except (ClientError, ValueError) as e:
            logger.error(f"Cloudinary delete error for {public_id}: {e}")
            return UploadResult(success=False, public_id=public_id, error=str(e))

        result = payload.get("result") if isinstance(payload, dict) else None
        if response.status != 200 or result not in ("ok", "not found"):
            return UploadResult(success=False, public_id=public_id, error=error_message(payload, response.status))
        return UploadResult(success=True, public_id=public_id)

    def optimized_url(self, public_id: str, width: Optional[int] = None, height: Optional[int] = None,
                      quality: str = "auto", fetch_format: str = "auto", crop: Optional[str] = None) -> str:
        transformations = [f"f_{fetch_format}", f"q_{quality}"]
        if width:
            transformations.append(f"w_{width}")
        if height:
            transformations.append(f"h_{height}")
        if crop:
            transformations.append(f"c_{crop}")
        cloud = self.settings.cloudinary_cloud_name or "demo"
        return f"{DELIVERY_BASE}/{cloud}/image/upload/{','.join(transformations)}/{public_id}"

    def thumbnail_url(self, public_id: str, width: int = 300, height: int = 200) -> str:
        return self.optimized_url(public_id, width=width, height=height, crop="fill")
