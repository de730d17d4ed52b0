"""Tests for the Cloudinary image host."""
import asyncio
import hashlib
from unittest.mock import AsyncMock, MagicMock

import pytest

from turfease.config import Settings
from turfease.services.image_upload_service import CloudinaryImageHost, sign_params

CONFIGURED = {
    "cloudinary_cloud_name": "turfease",
    "cloudinary_api_key": "key",
    "cloudinary_api_secret": "secret",
    "environment": "staging",
}


class FakeResponse:
    def __init__(self, status, payload):
        self.status = status
        self._payload = payload

    async def json(self, content_type=None):
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


def _host_with_responses(*responses):
    host = CloudinaryImageHost(Settings(**CONFIGURED))
    session = MagicMock()
    session.post = MagicMock(side_effect=list(responses))
    host._ensure_session = AsyncMock(return_value=session)
    return host, session


def test_sign_params_matches_cloudinary_scheme():
    params = {"timestamp": 1700000000, "folder": "turfs", "public_id": "abc", "empty": ""}

    expected = hashlib.sha1(b"folder=turfs&public_id=abc&timestamp=1700000000secret").hexdigest()
    assert sign_params(params, "secret") == expected


def test_optimized_url():
    host = CloudinaryImageHost(Settings(**CONFIGURED))

    url = host.optimized_url("turfs/abc", width=300, height=200, crop="fill")

    assert url == "https://res.cloudinary.com/turfease/image/upload/f_auto,q_auto,w_300,h_200,c_fill/turfs/abc"
    assert host.thumbnail_url("turfs/abc") == url


@pytest.mark.asyncio
async def test_placeholder_in_development_without_credentials():
    host = CloudinaryImageHost(Settings(environment="development"))

    result = await host.upload_image(b"bytes", "turfs", "turf_1")

    assert result.success is True
    assert result.placeholder is True
    assert result.url.startswith("https://picsum.photos/seed/")


@pytest.mark.asyncio
async def test_unconfigured_outside_development_fails():
    host = CloudinaryImageHost(Settings(environment="staging"))

    result = await host.upload_image(b"bytes")

    assert result.success is False
    assert result.error == "image_host_not_configured"


@pytest.mark.asyncio
async def test_successful_upload_maps_payload():
    host, session = _host_with_responses(
        FakeResponse(200, {"secure_url": "https://res.cloudinary.com/x.jpg", "public_id": "turfs/x",
                           "width": 800, "height": 600, "format": "jpg", "bytes": 1234})
    )

    result = await host.upload_image(b"bytes", "turfs", "x")

    assert result.success is True
    assert result.url == "https://res.cloudinary.com/x.jpg"
    assert result.size == 1234
    assert session.post.call_args.args[0] == "https://api.cloudinary.com/v1_1/turfease/image/upload"


@pytest.mark.asyncio
async def test_error_response_is_reported():
    host, _ = _host_with_responses(FakeResponse(400, {"error": {"message": "Invalid image file"}}))

    result = await host.upload_image("data:image/png;base64,AAAA")

    assert result.success is False
    assert result.error == "Invalid image file"


@pytest.mark.asyncio
async def test_batch_upload_reports_partial_failure():
    host, _ = _host_with_responses(
        FakeResponse(200, {"secure_url": "https://res.cloudinary.com/a.jpg", "public_id": "turfs/a"}),
        FakeResponse(500, {"error": {"message": "server error"}}),
    )

    batch = await host.upload_images([b"a", b"b"])

    assert batch.success is True
    assert batch.urls == ["https://res.cloudinary.com/a.jpg"]
    assert len(batch.failed) == 1


@pytest.mark.asyncio
async def test_timeout_is_reported():
    host = CloudinaryImageHost(Settings(**CONFIGURED))
    session = MagicMock()
    session.post = MagicMock(side_effect=asyncio.TimeoutError())
    host._ensure_session = AsyncMock(return_value=session)

    result = await host.upload_image(b"bytes")

    assert result.success is False
    assert result.error == "timeout"


@pytest.mark.asyncio
async def test_delete_accepts_not_found():
    host, _ = _host_with_responses(FakeResponse(200, {"result": "not found"}))

    result = await host.delete_image("turfs/gone")

    assert result.success is True


@pytest.mark.asyncio
async def test_error_body_with_string_error_is_reported():
    host, _ = _host_with_responses(FakeResponse(401, {"error": "Invalid Signature"}))

    result = await host.upload_image(b"bytes")

    assert result.success is False
    assert result.error == "Invalid Signature"


@pytest.mark.asyncio
async def test_non_json_object_body_is_reported():
    host, _ = _host_with_responses(FakeResponse(502, "Bad Gateway"), FakeResponse(200, None))

    failed = await host.upload_image(b"bytes")
    empty = await host.upload_image(b"bytes")

    assert failed.success is False
    assert failed.error == "Bad Gateway"
    assert empty.success is False
    assert empty.error == "HTTP 200"


@pytest.mark.asyncio
async def test_delete_with_unexpected_body_is_reported():
    host, _ = _host_with_responses(FakeResponse(500, ["unexpected"]))

    result = await host.delete_image("turfs/a")

    assert result.success is False
    assert result.error == "HTTP 500"
