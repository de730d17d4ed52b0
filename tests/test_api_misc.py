"""Tests for health, root and upload endpoints."""
import pytest

from turfease.models.base import AccountRole


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["otp_store"] == "memory"


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["message"] == "TurfEase API"


@pytest.mark.asyncio
async def test_single_image_upload(client, account_factory, auth_headers, image_host):
    owner = await account_factory(AccountRole.OWNER)

    response = await client.post(
        "/api/upload/image",
        files={"image": ("pitch.png", b"\x89PNG fake", "image/png")},
        headers=auth_headers(owner),
    )

    assert response.status_code == 200
    assert response.json()["data"]["url"].startswith("https://images.test/turfs/")
    assert image_host.uploaded == [b"\x89PNG fake"]


@pytest.mark.asyncio
async def test_upload_rejects_non_images(client, account_factory, auth_headers):
    owner = await account_factory(AccountRole.OWNER)

    response = await client.post(
        "/api/upload/image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=auth_headers(owner),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_file_type"


@pytest.mark.asyncio
async def test_batch_upload(client, account_factory, auth_headers):
    owner = await account_factory(AccountRole.OWNER)
    files = [("images", (f"{i}.jpg", b"jpeg-bytes", "image/jpeg")) for i in range(2)]

    response = await client.post("/api/upload/images", files=files, headers=auth_headers(owner))

    assert response.status_code == 200
    assert response.json()["data"]["total_uploaded"] == 2


@pytest.mark.asyncio
async def test_upload_requires_authentication(client):
    response = await client.post("/api/upload/image", files={"image": ("a.png", b"x", "image/png")})

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_delete_and_optimize(client, account_factory, auth_headers, image_host):
    owner = await account_factory(AccountRole.OWNER)

    response = await client.delete("/api/upload/image/turfs/abc", headers=auth_headers(owner))
    assert response.status_code == 200
    assert image_host.deleted == ["turfs/abc"]

    response = await client.get("/api/upload/optimize/turfs/abc", params={"width": 300})
    assert response.json()["url"] == "https://images.test/w_300/turfs/abc"
