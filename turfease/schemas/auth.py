"""Authentication schema definitions."""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, constr, model_validator

from turfease.schemas.account import AccountResponse

PasswordStr = constr(min_length=1, max_length=128)
EmailLike = constr(pattern=r"[^@\s]+@[^@\s]+\.[^@\s]+", min_length=5, max_length=255)


class RegisterRequest(BaseModel):
    """Self-service sign-up for players and turf owners.

    Field rules beyond basic types are enforced by the account service so the
    same checks apply to every caller.
    """

    first_name: str
    last_name: str
    email: str
    phone: str
    password: str = Field(max_length=128)
    role: str = "player"
    username: Optional[str] = None
    agree_to_terms: bool = False
    agree_to_marketing: bool = False

    preferred_sports: Optional[list[str]] = None
    skill_level: Optional[str] = None
    location: Optional[str] = None

    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    turf_count: Optional[str] = None


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    account_id: UUID
    email: str
    role: str
    requires_otp_verification: bool = True


class LoginRequest(BaseModel):
    """Login by email or username."""

    email: Optional[EmailLike] = None
    username: Optional[str] = None
    password: PasswordStr

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.email and not self.username:
            raise ValueError("Please provide email or username")
        return self


class FirebaseLoginRequest(BaseModel):
    firebase_token: str = Field(min_length=1)


class VerifyOtpRequest(BaseModel):
    account_id: UUID
    otp: str = Field(min_length=1, max_length=16)


class ResendOtpRequest(BaseModel):
    account_id: UUID


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailLike


class ResetPasswordRequest(BaseModel):
    password: str = Field(max_length=128)


class ProfileUpdateRequest(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=2, max_length=50)
    phone: Optional[str] = Field(default=None, pattern=r"^[0-9+\-\s()]+$")
    preferred_sports: Optional[list[str]] = None
    skill_level: Optional[str] = None
    location: Optional[str] = None
    avatar: Optional[str] = None


class AuthResponse(BaseModel):
    """JWT credentials plus the signed-in account."""

    success: bool = True
    message: str = ""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    account: AccountResponse
    needs_profile_completion: bool = False


class SessionResponse(BaseModel):
    success: bool = True
    account: AccountResponse


class VerifyOtpResponse(BaseModel):
    success: bool = True
    message: str
    account: AccountResponse
    requires_admin_approval: bool = False


class ResetPasswordResponse(BaseModel):
    success: bool = True
    message: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
