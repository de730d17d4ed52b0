"""Authentication: credential checks, JWT issuance and refresh token rotation."""
from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.config import get_settings
from turfease.models.account import Account, PLACEHOLDER_PHONE
from turfease.models.base import AccountRole
from turfease.models.refresh_token import RefreshToken
from turfease.services.account_service import AccountService, new_account
from turfease.services.approval_service import check_login_gate
from turfease.services.errors import ForbiddenError, UnauthorizedError, ValidationError
from turfease.services.identity_service import IdentityProvider
from turfease.utils.passwords import (
    generate_random_password,
    hash_password,
    hash_token,
    verify_password,
)

logger = logging.getLogger(__name__)

# Compared against when the account does not exist so both paths cost one bcrypt check
_DUMMY_PASSWORD_HASH = hash_password(secrets.token_urlsafe(16))


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass(frozen=True)
class FederatedLogin:
    account: Account
    tokens: TokenPair
    created: bool


def check_account_state(account: Account) -> None:
    """Gates shared by every login path: deactivated accounts, then blocked ones."""
    if not account.is_active:
        raise ForbiddenError("account_inactive", "Account is deactivated")
    if account.is_blocked:
        raise ForbiddenError("account_blocked", "Account is blocked")


class AuthService:
    """Service responsible for credential management and JWT issuance."""

    def __init__(self, db: AsyncSession, *, account_service: AccountService | None = None):
        self.db = db
        self.settings = get_settings()
        self.account_service = account_service or AccountService(db)

    # ------------------------------------------------------------------
    # Password login
    # ------------------------------------------------------------------
    async def authenticate(self, password: str, *, email: str | None = None, username: str | None = None) -> Account:
        """Check credentials and account gates, in that order.

        Unknown accounts and wrong passwords fail identically.
        """
        if not email and not username:
            raise ValidationError("missing_identifier", "Please provide email or username")
        if not password:
            raise ValidationError("missing_field", "Please provide a password", field="password")

        if email:
            account = await self.account_service.get_by_email(email)
        else:
            account = await self.account_service.get_by_username(username)

        password_ok = verify_password(password, account.password_hash if account else _DUMMY_PASSWORD_HASH)
        if not account or not password_ok:
            raise UnauthorizedError("invalid_credentials", "Invalid credentials")

        check_account_state(account)
        if not account.is_email_verified:
            raise ForbiddenError("email_not_verified", "Please verify your email before logging in")
        check_login_gate(account)
        return account

    async def login(self, password: str, *, email: str | None = None, username: str | None = None
                    ) -> tuple[Account, TokenPair]:
        account = await self.authenticate(password, email=email, username=username)
        account = await self.account_service.touch_last_login(account)
        tokens = await self.issue_tokens(account)
        logger.info(f"Account {account.account_id} logged in ({account.role})")
        return account, tokens

    # ------------------------------------------------------------------
    # Federated login
    # ------------------------------------------------------------------
    async def login_with_identity(self, provider: IdentityProvider, id_token: str) -> FederatedLogin:
        """Sign in with a Firebase ID token, creating a player on first use."""
        identity = await provider.verify(id_token)

        account = await self.account_service.get_by_firebase_uid(identity.subject_id)
        if account is None:
            account = await self.account_service.get_by_email(identity.email)

        created = False
        if account is not None:
            changed = False
            if not account.firebase_uid:
                account.firebase_uid = identity.subject_id
                changed = True
            if identity.picture_url and not account.avatar:
                account.avatar = identity.picture_url
                changed = True
            if changed:
                await self.db.commit()
                await self.db.refresh(account)
            check_account_state(account)
            check_login_gate(account)
        else:
            first_name, last_name = identity.name_parts
            account = new_account(
                AccountRole.PLAYER,
                email=identity.email,
                password_hash=hash_password(generate_random_password()),
                first_name=first_name or identity.email.split("@")[0],
                last_name=last_name,
                phone=PLACEHOLDER_PHONE,
                email_verified=True,
                firebase_uid=identity.subject_id,
                avatar=identity.picture_url,
                agree_to_terms=True,
            )
            account = await self.account_service.create_account(account)
            created = True
            logger.info(f"Created player {account.account_id} from federated sign-in")

        account = await self.account_service.touch_last_login(account)
        tokens = await self.issue_tokens(account)
        return FederatedLogin(account=account, tokens=tokens, created=created)

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------
    def create_access_token(self, account: Account) -> tuple[str, int]:
        now = datetime.now(UTC)
        expire = now + timedelta(minutes=self.settings.access_token_exp_minutes)
        payload = {
            "sub": str(account.account_id),
            "role": account.role,
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }
        token = jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        return token, self.settings.access_token_exp_minutes * 60

    def decode_access_token(self, token: str) -> dict:
        try:
            return jwt.decode(token, self.settings.secret_key, algorithms=[self.settings.jwt_algorithm])
        except jwt.ExpiredSignatureError as exc:
            raise UnauthorizedError("token_expired", "Token expired, please log in again") from exc
        except jwt.InvalidTokenError as exc:
            raise UnauthorizedError("invalid_token", "Invalid token") from exc

    async def _store_refresh_token(self, account: Account, raw_token: str) -> RefreshToken:
        refresh_token = RefreshToken(
            token_id=uuid.uuid4(),
            account_id=account.account_id,
            token_hash=hash_token(raw_token),
            expires_at=datetime.now(UTC) + timedelta(days=self.settings.refresh_token_exp_days),
        )
        self.db.add(refresh_token)
        return refresh_token

    async def issue_tokens(self, account: Account, *, rotate_existing: bool = True) -> TokenPair:
        if rotate_existing:
            await self.revoke_all_refresh_tokens(account.account_id)

        access_token, expires_in = self.create_access_token(account)
        raw_refresh_token = secrets.token_urlsafe(48)
        await self._store_refresh_token(account, raw_refresh_token)
        await self.db.commit()
        return TokenPair(access_token=access_token, refresh_token=raw_refresh_token, expires_in=expires_in)

    async def revoke_refresh_token(self, raw_token: str) -> None:
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(raw_token))
        )
        refresh_token = result.scalar_one_or_none()
        if refresh_token and refresh_token.revoked_at is None:
            refresh_token.revoked_at = datetime.now(UTC)
            await self.db.commit()

    async def revoke_all_refresh_tokens(self, account_id: uuid.UUID) -> None:
        await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.account_id == account_id)
            .where(RefreshToken.revoked_at.is_(None))
            .values(revoked_at=datetime.now(UTC))
        )
        await self.db.commit()

    async def exchange_refresh_token(self, raw_token: str) -> tuple[Account, TokenPair]:
        """Swap a live refresh token for a new pair; the old one is revoked."""
        if not raw_token:
            raise UnauthorizedError("invalid_refresh_token", "Refresh token is required")

        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(raw_token))
        )
        refresh_token = result.scalar_one_or_none()
        if not refresh_token or not refresh_token.is_active():
            raise UnauthorizedError("invalid_refresh_token", "Token could not be refreshed, please log in again")

        account = await self.account_service.get_by_id(refresh_token.account_id)
        if not account:
            raise UnauthorizedError("invalid_refresh_token", "Token could not be refreshed, please log in again")
        check_account_state(account)
        check_login_gate(account)

        refresh_token.revoked_at = datetime.now(UTC)
        tokens = await self.issue_tokens(account, rotate_existing=False)
        return account, tokens

    async def resolve_access_token(self, token: str) -> Account:
        """Return the active account behind an access token."""
        payload = self.decode_access_token(token)
        account_id = payload.get("sub")
        if not account_id:
            raise UnauthorizedError("invalid_token", "Invalid token")
        account = await self.account_service.get_by_id(account_id)
        if not account:
            raise UnauthorizedError("invalid_token", "Invalid token")
        check_account_state(account)
        return account
