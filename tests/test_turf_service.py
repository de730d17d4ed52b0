"""Tests for turf listings, filters and nearby search."""
import uuid

import pytest

from turfease.models.base import AccountRole, ApprovalStatus
from turfease.services.errors import (
    DependencyFailureError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from turfease.services.turf_service import TurfService, parse_sort, pagination_links, TurfFilters

PUNE = (18.5204, 73.8567)


def _turf_data(**overrides):
    data = {
        "name": "Green Field Arena",
        "address": "12 MG Road, Pune",
        "latitude": PUNE[0],
        "longitude": PUNE[1],
        "price_per_hour": 1200,
        "images": ["data:image/png;base64,AAAA"],
    }
    data.update(overrides)
    return data


@pytest.fixture
async def approved_owner(account_factory):
    return await account_factory(AccountRole.OWNER, approval_status=ApprovalStatus.APPROVED)


@pytest.mark.asyncio
class TestCreateAndUpdate:
    async def test_create_uploads_images(self, db_session, image_host, approved_owner):
        turf = await TurfService(db_session, image_host).create(approved_owner, _turf_data())

        assert turf.owner_id == approved_owner.account_id
        assert turf.is_approved is False
        assert turf.images == ["https://images.test/turfs/turf_0.jpg"]
        assert turf.formatted_price == "₹1200/hour"

    @pytest.mark.parametrize(
        "overrides, code",
        [
            ({"latitude": 95}, "invalid_coordinates"),
            ({"price_per_hour": -1}, "invalid_price"),
            ({"images": []}, "images_required"),
        ],
    )
    async def test_create_validation(self, db_session, image_host, approved_owner, overrides, code):
        with pytest.raises(ValidationError) as exc_info:
            await TurfService(db_session, image_host).create(approved_owner, _turf_data(**overrides))

        assert exc_info.value.code == code

    async def test_create_fails_when_every_upload_fails(self, db_session, image_host, approved_owner):
        image_host.fail = True

        with pytest.raises(DependencyFailureError) as exc_info:
            await TurfService(db_session, image_host).create(approved_owner, _turf_data())

        assert exc_info.value.code == "upload_failed"

    async def test_only_owner_or_admin_may_update(self, db_session, image_host, approved_owner, account_factory):
        service = TurfService(db_session, image_host)
        turf = await service.create(approved_owner, _turf_data())
        other_owner = await account_factory(AccountRole.OWNER, approval_status=ApprovalStatus.APPROVED)
        admin = await account_factory(AccountRole.ADMIN)

        with pytest.raises(UnauthorizedError) as exc_info:
            await service.update(turf.turf_id, other_owner, {"name": "Hijacked"})
        assert exc_info.value.code == "not_turf_owner"

        updated = await service.update(turf.turf_id, admin, {"price_per_hour": 1500, "name": None})
        assert updated.price_per_hour == 1500
        assert updated.name == "Green Field Arena"

    async def test_update_replaces_images(self, db_session, image_host, approved_owner):
        service = TurfService(db_session, image_host)
        turf = await service.create(approved_owner, _turf_data())

        updated = await service.update(turf.turf_id, approved_owner, {"images": ["a", "b"]})

        assert len(updated.images) == 2

    async def test_delete_and_get(self, db_session, image_host, approved_owner):
        service = TurfService(db_session, image_host)
        turf = await service.create(approved_owner, _turf_data())

        await service.delete(turf.turf_id, approved_owner)

        with pytest.raises(NotFoundError) as exc_info:
            await service.get(turf.turf_id)
        assert exc_info.value.code == "turf_not_found"

    async def test_get_with_malformed_id(self, db_session):
        with pytest.raises(NotFoundError):
            await TurfService(db_session).get("not-a-uuid")


@pytest.mark.asyncio
class TestListing:
    async def _seed(self, db_session, image_host, owner):
        service = TurfService(db_session, image_host)
        cheap = await service.create(owner, _turf_data(name="Budget Box", price_per_hour=500))
        mid = await service.create(owner, _turf_data(name="City Kickabout", price_per_hour=1000))
        pricey = await service.create(owner, _turf_data(name="Premier Pitch", price_per_hour=3000))
        return service, cheap, mid, pricey

    async def test_price_filter_and_sort(self, db_session, image_host, approved_owner):
        service, cheap, mid, pricey = await self._seed(db_session, image_host, approved_owner)

        turfs, total = await service.list_turfs(TurfFilters(min_price=600), sort="-price_per_hour")

        assert total == 2
        assert [t.turf_id for t in turfs] == [pricey.turf_id, mid.turf_id]

    async def test_search_and_pagination(self, db_session, image_host, approved_owner):
        service, *_ = await self._seed(db_session, image_host, approved_owner)

        turfs, total = await service.list_turfs(TurfFilters(search="pitch"))
        assert [t.name for t in turfs] == ["Premier Pitch"]

        first_page, total = await service.list_turfs(sort="name", page=1, limit=2)
        assert total == 3
        assert [t.name for t in first_page] == ["Budget Box", "City Kickabout"]


@pytest.mark.asyncio
class TestNearby:
    async def test_nearby_returns_approved_turfs_nearest_first(self, db_session, image_host, approved_owner):
        service = TurfService(db_session, image_host)
        near = await service.create(approved_owner, _turf_data(name="Near", latitude=18.5210, longitude=73.8570))
        far = await service.create(approved_owner, _turf_data(name="Far", latitude=18.5600, longitude=73.8567))
        unapproved = await service.create(approved_owner, _turf_data(name="Hidden"))
        mumbai = await service.create(approved_owner, _turf_data(name="Mumbai", latitude=19.0760, longitude=72.8777))
        for turf in (near, far, mumbai):
            await service.approve(turf.turf_id)

        matches = await service.nearby(*PUNE, distance_m=10000)

        assert [turf.name for turf, _ in matches] == ["Near", "Far"]
        assert matches[0][1] < matches[1][1] <= 10000
        assert unapproved.turf_id not in {turf.turf_id for turf, _ in matches}

    async def test_nearby_rejects_bad_coordinates(self, db_session):
        with pytest.raises(ValidationError):
            await TurfService(db_session).nearby(123.0, 0.0)

    async def test_nearby_rejects_non_positive_distance(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await TurfService(db_session).nearby(*PUNE, distance_m=0)

        assert exc_info.value.code == "invalid_distance"

    async def test_list_for_owner(self, db_session, image_host, approved_owner, account_factory):
        service = TurfService(db_session, image_host)
        mine = await service.create(approved_owner, _turf_data())
        other = await account_factory(AccountRole.OWNER, approval_status=ApprovalStatus.APPROVED)
        await service.create(other, _turf_data())

        turfs = await service.list_for_owner(approved_owner.account_id)

        assert [t.turf_id for t in turfs] == [mine.turf_id]
        assert uuid.UUID(str(mine.owner_id)) == approved_owner.account_id


def test_unknown_sort_field():
    with pytest.raises(ValidationError) as exc_info:
        parse_sort("password_hash")

    assert exc_info.value.code == "invalid_sort"


def test_pagination_links():
    assert pagination_links(1, 10, 25) == {"next": {"page": 2, "limit": 10}}
    assert pagination_links(3, 10, 25) == {"prev": {"page": 2, "limit": 10}}
    assert pagination_links(2, 10, 25) == {"next": {"page": 3, "limit": 10}, "prev": {"page": 1, "limit": 10}}
