"""Pydantic models for the auth service API and user records."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

_USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"
_OTP_PATTERN = r"^\d{4}$"


def _check_password_strength(value: str) -> str:
    if not any(c.isupper() for c in value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in value):
        raise ValueError("Password must contain at least one number")
    return value


StrongPassword = Annotated[str, Field(min_length=8), AfterValidator(_check_password_strength)]


# ── Records ────────────────────────────────────────────────────────────────


class User(BaseModel):
    """A stored account, including its password hash."""

    id: str
    name: str
    email: str
    username: str
    password: str | None = None
    created_at: datetime
    updated_at: datetime


class UserInfo(BaseModel):
    """Public view of an account."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    username: str
    created_at: datetime
    updated_at: datetime


# ── Requests ───────────────────────────────────────────────────────────────


class RegistrationRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30, pattern=_USERNAME_PATTERN)
    password: StrongPassword


class OtpVerificationRequest(RegistrationRequest):
    otp: str = Field(..., pattern=_OTP_PATTERN, description="4-digit code from the email")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordVerificationRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=_OTP_PATTERN)


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    new_password: StrongPassword = Field(..., alias="newPassword")


class ResendOtpRequest(BaseModel):
    email: EmailStr
    name: str | None = None


class FieldValidationRequest(BaseModel):
    field: Literal["email", "username"]
    value: str = Field(..., min_length=1)


# ── Responses ──────────────────────────────────────────────────────────────


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class LoginResponse(BaseModel):
    success: bool = True
    message: str
    user: UserInfo


class UserResponse(BaseModel):
    success: bool = True
    user: UserInfo


class RefreshResponse(BaseModel):
    success: bool = True


class FieldValidationResponse(BaseModel):
    valid: bool
    message: str


class HealthResponse(BaseModel):
    message: str
