"""
Authentication endpoints – registration with email OTP, login,
token refresh and password reset.
"""

from typing import Annotated

from fastapi import APIRouter, Cookie, Request, Response, status

from auth_service.dependencies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    Accounts,
    clear_auth_cookies,
    set_auth_cookie,
)
from auth_service.models import (
    ForgotPasswordRequest,
    ForgotPasswordVerificationRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OtpVerificationRequest,
    RefreshResponse,
    RegistrationRequest,
    ResetPasswordRequest,
    UserInfo,
)
from auth_service.rate_limit import AUTH, STRICT, limiter

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=MessageResponse,
    operation_id="register",
    summary="Start registration by mailing an activation OTP",
)
@limiter.limit(STRICT)
async def register(request: Request, body: RegistrationRequest, accounts: Accounts) -> MessageResponse:
    await accounts.register(body.name, body.email, body.username)
    return MessageResponse(message="OTP sent to your email, Please verify your account")


@router.post(
    "/verify",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="verifyRegistration",
    summary="Verify the activation OTP and create the account",
)
@limiter.limit(AUTH)
async def verify(
    request: Request, body: OtpVerificationRequest, accounts: Accounts
) -> MessageResponse:
    await accounts.verify_registration(
        body.name, body.email, body.username, body.password, body.otp
    )
    return MessageResponse(message="User registered successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    operation_id="login",
    summary="Log in and receive access/refresh token cookies",
)
@limiter.limit(AUTH)
async def login(
    request: Request, body: LoginRequest, response: Response, accounts: Accounts
) -> LoginResponse:
    result = await accounts.login(body.email, body.password)
    set_auth_cookie(response, ACCESS_COOKIE, result.access_token, accounts.tokens.access_ttl)
    set_auth_cookie(response, REFRESH_COOKIE, result.refresh_token, accounts.tokens.refresh_ttl)
    return LoginResponse(
        message="Login successful",
        user=UserInfo.model_validate(result.user),
    )


@router.post(
    "/refresh-token",
    response_model=RefreshResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="refreshToken",
    summary="Issue a new access token from the refresh-token cookie",
)
async def refresh_access_token(
    response: Response,
    accounts: Accounts,
    refresh_token: Annotated[str | None, Cookie()] = None,
) -> RefreshResponse:
    access_token = await accounts.refresh(refresh_token)
    set_auth_cookie(response, ACCESS_COOKIE, access_token, accounts.tokens.access_ttl)
    return RefreshResponse()


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    operation_id="forgotPassword",
    summary="Mail a password-reset OTP",
)
@limiter.limit(STRICT)
async def forgot_password(
    request: Request, body: ForgotPasswordRequest, accounts: Accounts
) -> MessageResponse:
    await accounts.forgot_password(body.email)
    return MessageResponse(message="OTP sent to your email for password reset")


@router.post(
    "/forgot-password/verify",
    response_model=MessageResponse,
    operation_id="verifyForgotPasswordOtp",
    summary="Verify the password-reset OTP",
)
@limiter.limit(AUTH)
async def verify_forgot_password(
    request: Request, body: ForgotPasswordVerificationRequest, accounts: Accounts
) -> MessageResponse:
    await accounts.verify_forgot_password(body.email, body.otp)
    return MessageResponse(message="OTP verified, You can now reset your password")


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    operation_id="resetPassword",
    summary="Set a new password",
)
async def reset_password(body: ResetPasswordRequest, accounts: Accounts) -> MessageResponse:
    await accounts.reset_password(body.email, body.new_password)
    return MessageResponse(message="Password reset successfully")


@router.post(
    "/logout",
    response_model=MessageResponse,
    operation_id="logout",
    summary="Clear the auth cookies",
)
async def logout(response: Response) -> MessageResponse:
    clear_auth_cookies(response)
    return MessageResponse(message="Logged out successfully")
