"""Authentication endpoints: registration, email verification, login and password reset."""
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from turfease.database import get_db
from turfease.dependencies import (
    enforce_auth_rate_limit,
    get_current_account,
    get_identity_provider,
    get_notifier,
    get_otp_store,
)
from turfease.models.account import Account
from turfease.models.base import AccountRole
from turfease.schemas.account import AccountResponse
from turfease.schemas.auth import (
    AuthResponse,
    FirebaseLoginRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResendOtpRequest,
    ResetPasswordRequest,
    ResetPasswordResponse,
    SessionResponse,
    VerifyOtpRequest,
    VerifyOtpResponse,
)
from turfease.schemas.base import MessageResponse
from turfease.services.account_service import AccountService, RegistrationData
from turfease.services.approval_service import check_login_gate
from turfease.services.auth_service import AuthService, TokenPair, check_account_state
from turfease.services.errors import ForbiddenError
from turfease.services.identity_service import IdentityProvider
from turfease.services.notification_service import Notifier
from turfease.services.password_reset_service import PasswordResetService
from turfease.services.verification_service import VerificationService
from turfease.utils.otp_store import OtpStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_response(account: Account, tokens: TokenPair, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type=tokens.token_type,
        expires_in=tokens.expires_in,
        account=AccountResponse.model_validate(account),
        needs_profile_completion=account.needs_profile_completion,
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    otp_store: OtpStore = Depends(get_otp_store),
    notifier: Notifier = Depends(get_notifier),
) -> RegisterResponse:
    """Create an unverified account and email its first verification code."""
    account_service = AccountService(db)
    account = await account_service.register(RegistrationData(**request.model_dump()))

    verification = VerificationService(db, otp_store, notifier, account_service=account_service)
    await verification.issue(account)

    return RegisterResponse(
        message="Registration successful! Please check your email for verification OTP.",
        account_id=account.account_id,
        email=account.email,
        role=account.role,
    )


@router.post("/verify-otp", response_model=VerifyOtpResponse, dependencies=[Depends(enforce_auth_rate_limit)])
async def verify_otp(
    request: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
    otp_store: OtpStore = Depends(get_otp_store),
    notifier: Notifier = Depends(get_notifier),
) -> VerifyOtpResponse:
    account = await VerificationService(db, otp_store, notifier).verify(request.account_id, request.otp)
    is_owner = account.role == AccountRole.OWNER.value
    message = (
        "Email verified successfully! Your account is pending admin approval. You will be notified once approved."
        if is_owner
        else "Email verified successfully! You can now login to your account."
    )
    return VerifyOtpResponse(
        message=message,
        account=AccountResponse.model_validate(account),
        requires_admin_approval=is_owner and account.is_pending_approval,
    )


@router.post("/resend-otp", response_model=MessageResponse, dependencies=[Depends(enforce_auth_rate_limit)])
async def resend_otp(
    request: ResendOtpRequest,
    db: AsyncSession = Depends(get_db),
    otp_store: OtpStore = Depends(get_otp_store),
    notifier: Notifier = Depends(get_notifier),
) -> MessageResponse:
    await VerificationService(db, otp_store, notifier).reissue(request.account_id)
    return MessageResponse(message="New OTP sent successfully. Please check your email.")


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(enforce_auth_rate_limit)])
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    """Authenticate by email or username and issue JWT tokens."""
    account, tokens = await AuthService(db).login(
        request.password, email=request.email, username=request.username
    )
    return _auth_response(account, tokens, "Login successful")


@router.post("/firebase", response_model=AuthResponse, dependencies=[Depends(enforce_auth_rate_limit)])
async def firebase_login(
    request: FirebaseLoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> AuthResponse:
    """Sign in with a Firebase ID token; first-time users become players."""
    result = await AuthService(db).login_with_identity(provider, request.firebase_token)
    if result.created:
        response.status_code = status.HTTP_201_CREATED
        message = "Account created successfully"
    else:
        message = "Firebase authentication successful"
    return _auth_response(result.account, result.tokens, message)


@router.post("/refresh", response_model=AuthResponse)
async def refresh_tokens(request: RefreshRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    account, tokens = await AuthService(db).exchange_refresh_token(request.refresh_token)
    return _auth_response(account, tokens, "Token refreshed")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: LogoutRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    auth_service = AuthService(db)
    if request.refresh_token:
        await auth_service.revoke_refresh_token(request.refresh_token)
    else:
        await auth_service.revoke_all_refresh_tokens(account.account_id)
    return MessageResponse(message="User logged out successfully")


@router.get("/me", response_model=SessionResponse)
async def get_me(account: Account = Depends(get_current_account)) -> SessionResponse:
    return SessionResponse(account=AccountResponse.model_validate(account))


@router.put("/profile", response_model=SessionResponse)
async def update_profile(
    request: ProfileUpdateRequest,
    account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    updated = await AccountService(db).update_profile(account, request.model_dump(exclude_unset=True))
    return SessionResponse(account=AccountResponse.model_validate(updated))


@router.post("/forgot-password", response_model=MessageResponse, dependencies=[Depends(enforce_auth_rate_limit)])
async def forgot_password(
    request: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> MessageResponse:
    await PasswordResetService(db, notifier).request_reset(request.email)
    return MessageResponse(message="Password reset email sent successfully")


@router.put("/reset-password/{token}", response_model=ResetPasswordResponse,
            dependencies=[Depends(enforce_auth_rate_limit)])
async def reset_password(
    token: str,
    request: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> ResetPasswordResponse:
    """Set a new password; tokens are returned only if the account may sign in."""
    account = await PasswordResetService(db, notifier).reset_password(token, request.password)

    try:
        check_account_state(account)
        if not account.is_email_verified:
            raise ForbiddenError("email_not_verified")
        check_login_gate(account)
    except ForbiddenError as exc:
        logger.info(f"Password reset for account {account.account_id}; sign-in still blocked ({exc.code})")
        return ResetPasswordResponse(message="Password reset successful")

    tokens = await AuthService(db).issue_tokens(account)
    return ResetPasswordResponse(
        message="Password reset successful",
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )
