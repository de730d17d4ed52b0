"""Pytest configuration and fixtures."""
import os
import uuid
from pathlib import Path
from typing import Optional

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_turfease.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["REDIS_URL"] = ""

from turfease.config import get_settings
from turfease.database import Base
from turfease.models.account import Account
from turfease.models.base import AccountRole, ApprovalStatus
from turfease.services.account_service import AccountService, new_account
from turfease.services.auth_service import AuthService
from turfease.services.errors import UnauthorizedError
from turfease.services.identity_service import FederatedIdentity
from turfease.services.image_upload_service import BatchUploadResult, UploadResult
from turfease.services.notification_service import DeliveryResult
from turfease.utils.otp_store import InMemoryOtpStore
from turfease.utils.passwords import hash_password

BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test_turfease.db"
TEST_PASSWORD = "TestPassword123!"
settings = get_settings()


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Build the test database from the Alembic migrations."""
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{TEST_DB_PATH}")
    command.upgrade(alembic_cfg, "head")

    yield

    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # On Windows the file may still be open; the next run removes it
            pass


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{TEST_DB_PATH}",
        echo=False,
        connect_args={"timeout": 30},
    )

    yield engine

    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


# ----------------------------------------------------------------------
# Collaborator fakes
# ----------------------------------------------------------------------
class FakeNotifier:
    """Records every message; individual channels can be told to fail."""

    def __init__(self):
        self.verification_codes: list[dict] = []
        self.decisions: list[dict] = []
        self.password_resets: list[dict] = []
        self.fail_verification = False
        self.fail_decision = False
        self.fail_reset = False

    async def send_verification_code(self, email, code, display_name, resend=False):
        if self.fail_verification:
            return DeliveryResult(success=False, error="smtp down", transport="fake")
        self.verification_codes.append(
            {"email": email, "code": code, "display_name": display_name, "resend": resend}
        )
        return DeliveryResult(success=True, message_id=f"msg-{len(self.verification_codes)}", transport="fake")

    async def send_approval_decision(self, email, display_name, business_name, decision, notes=None):
        if self.fail_decision:
            return DeliveryResult(success=False, error="smtp down", transport="fake")
        self.decisions.append(
            {"email": email, "business_name": business_name, "decision": decision, "notes": notes}
        )
        return DeliveryResult(success=True, message_id="decision", transport="fake")

    async def send_password_reset(self, email, display_name, reset_url):
        if self.fail_reset:
            return DeliveryResult(success=False, error="smtp down", transport="fake")
        self.password_resets.append({"email": email, "reset_url": reset_url})
        return DeliveryResult(success=True, message_id="reset", transport="fake")

    def last_code_for(self, email: str) -> Optional[str]:
        for message in reversed(self.verification_codes):
            if message["email"] == email:
                return message["code"]
        return None


class FakeIdentityProvider:
    def __init__(self):
        self.identities: dict[str, FederatedIdentity] = {}

    def register(self, token: str, identity: FederatedIdentity) -> None:
        self.identities[token] = identity

    async def verify(self, token: str) -> FederatedIdentity:
        identity = self.identities.get(token)
        if identity is None:
            raise UnauthorizedError("invalid_token", "Invalid Firebase token")
        return identity


class FakeImageHost:
    def __init__(self):
        self.uploaded: list = []
        self.deleted: list[str] = []
        self.fail = False

    async def upload_image(self, data, folder="turfs", public_id=None):
        if self.fail:
            return UploadResult(success=False, error="cloudinary down")
        public_id = public_id or f"img{len(self.uploaded)}"
        self.uploaded.append(data)
        return UploadResult(
            success=True,
            url=f"https://images.test/{folder}/{public_id}.jpg",
            public_id=f"{folder}/{public_id}",
            width=800,
            height=600,
            format="jpg",
        )

    async def upload_images(self, images, folder="turfs"):
        batch = BatchUploadResult()
        for index, image in enumerate(images):
            result = await self.upload_image(image, folder, f"turf_{index}")
            (batch.images if result.success else batch.failed).append(result)
        return batch

    async def delete_image(self, public_id):
        self.deleted.append(public_id)
        return UploadResult(success=True, public_id=public_id)

    def optimized_url(self, public_id, width=None, height=None, quality="auto", fetch_format="auto", crop=None):
        return f"https://images.test/w_{width}/{public_id}"


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def otp_store():
    return InMemoryOtpStore()


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture
def image_host():
    return FakeImageHost()


# ----------------------------------------------------------------------
# Application
# ----------------------------------------------------------------------
@pytest.fixture
async def test_app(session_factory, notifier, otp_store, identity_provider, image_host):
    """App with the database and every outside collaborator overridden."""
    from turfease.database import get_db
    from turfease.dependencies import get_identity_provider, get_image_host, get_notifier, get_otp_store
    from turfease.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_otp_store] = lambda: otp_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_image_host] = lambda: image_host
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as http_client:
        yield http_client


# ----------------------------------------------------------------------
# Accounts
# ----------------------------------------------------------------------
@pytest.fixture
def account_factory(db_session):
    """Insert accounts directly, bypassing registration and verification."""

    async def _create(
        role: AccountRole = AccountRole.PLAYER,
        *,
        email: Optional[str] = None,
        password: str = TEST_PASSWORD,
        verified: bool = True,
        approval_status: Optional[ApprovalStatus] = None,
        **fields,
    ) -> Account:
        unique_id = uuid.uuid4().hex[:8]
        account = new_account(
            role,
            email=email or f"{role.value}_{unique_id}@example.com",
            password_hash=hash_password(password),
            first_name=fields.pop("first_name", f"Test{unique_id}"),
            last_name=fields.pop("last_name", "User"),
            phone=fields.pop("phone", "9876543210"),
            email_verified=verified,
            agree_to_terms=True,
            **fields,
        )
        if approval_status is not None:
            account.approval_status = approval_status.value
            account.is_approved_by_admin = approval_status == ApprovalStatus.APPROVED
        return await AccountService(db_session).create_account(account)

    return _create


@pytest.fixture
def auth_headers(db_session):
    def _headers(account: Account) -> dict[str, str]:
        token, _ = AuthService(db_session).create_access_token(account)
        return {"Authorization": f"Bearer {token}"}

    return _headers


def player_payload(**overrides) -> dict:
    unique_id = uuid.uuid4().hex[:8]
    payload = {
        "first_name": "Asha",
        "last_name": "Rao",
        "email": f"asha_{unique_id}@example.com",
        "phone": "+91 98765 43210",
        "password": TEST_PASSWORD,
        "role": "player",
        "agree_to_terms": True,
        "preferred_sports": ["Football", "Cricket"],
        "skill_level": "Intermediate",
        "location": "Bengaluru",
    }
    payload.update(overrides)
    return payload


def owner_payload(**overrides) -> dict:
    unique_id = uuid.uuid4().hex[:8]
    payload = {
        "first_name": "Vikram",
        "last_name": "Shah",
        "email": f"owner_{unique_id}@example.com",
        "phone": "9876543210",
        "password": TEST_PASSWORD,
        "role": "owner",
        "agree_to_terms": True,
        "business_name": "Green Field Arena",
        "business_address": "12 MG Road, Pune",
        "business_phone": "020-5551234",
        "turf_count": "2-5",
    }
    payload.update(overrides)
    return payload
