"""FastAPI dependencies."""
import logging
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.database import get_db
from turfease.models.account import Account
from turfease.models.base import AccountRole
from turfease.services.approval_service import check_login_gate
from turfease.services.auth_service import AuthService
from turfease.services.errors import ForbiddenError, UnauthorizedError
from turfease.services.identity_service import FirebaseIdentityProvider, IdentityProvider
from turfease.services.image_upload_service import CloudinaryImageHost, ImageHost
from turfease.services.notification_service import EmailNotificationService, Notifier
from turfease.utils.otp_store import OtpStore, create_otp_store
from turfease.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

settings = get_settings()
rate_limiter = RateLimiter(settings.redis_url or None, timeout_seconds=settings.redis_timeout_seconds)

RATE_LIMIT_ERROR_MESSAGE = "Too many requests. Try again later."


# ----------------------------------------------------------------------
# Collaborators (overridden in tests)
# ----------------------------------------------------------------------
@lru_cache()
def get_otp_store() -> OtpStore:
    return create_otp_store(settings.redis_url or None, timeout_seconds=settings.redis_timeout_seconds)


@lru_cache()
def get_notifier() -> Notifier:
    return EmailNotificationService()


@lru_cache()
def get_identity_provider() -> IdentityProvider:
    return FirebaseIdentityProvider()


@lru_cache()
def get_image_host() -> ImageHost:
    return CloudinaryImageHost()


# ----------------------------------------------------------------------
# Rate limiting
# ----------------------------------------------------------------------
def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else None


async def enforce_auth_rate_limit(request: Request) -> None:
    """Per-IP limit on credential and code endpoints, enforced in production only."""
    if settings.environment != "production":
        return

    client_ip = _client_ip(request)
    if not client_ip:
        return

    scope = request.url.path.rstrip("/").split("/")[-1] or "auth"
    allowed, retry_after = await rate_limiter.check(
        f"auth:{scope}:{client_ip}", settings.auth_rate_limit, settings.auth_rate_limit_window_seconds
    )
    if allowed:
        return

    logger.warning(f"Rate limit exceeded for scope={scope} ip={client_ip}")
    headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
    raise HTTPException(status_code=429, detail=RATE_LIMIT_ERROR_MESSAGE, headers=headers)


# ----------------------------------------------------------------------
# Authentication
# ----------------------------------------------------------------------
async def get_current_account(
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> Account:
    """Resolve the signed-in account from a ``Bearer`` access token."""
    if not authorization:
        raise UnauthorizedError("missing_credentials", "Not authorized to access this route")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise UnauthorizedError("invalid_authorization_header", "Not authorized to access this route")

    account = await AuthService(db).resolve_access_token(token.strip())
    logger.debug(f"Authenticated account {account.account_id} ({account.role})")
    return account


def require_roles(*roles: AccountRole):
    """Build a dependency that admits only the given roles."""
    allowed = {role.value for role in roles}

    async def _dependency(account: Account = Depends(get_current_account)) -> Account:
        if account.role not in allowed:
            logger.warning(f"Account {account.account_id} with role {account.role} denied; needs {sorted(allowed)}")
            raise ForbiddenError(
                "role_not_allowed",
                f"User role {account.role} is not authorized to access this route",
            )
        return account

    return _dependency


get_admin_account = require_roles(AccountRole.ADMIN)
get_owner_account = require_roles(AccountRole.OWNER)
get_owner_or_admin_account = require_roles(AccountRole.OWNER, AccountRole.ADMIN)


async def get_approved_owner(account: Account = Depends(get_owner_account)) -> Account:
    """Owners may only manage listings once an administrator approved them."""
    check_login_gate(account)
    return account
