"""
Utility endpoints used by the sign-up form.
"""

from fastapi import APIRouter, Request

from auth_service.dependencies import Accounts
from auth_service.models import (
    FieldValidationRequest,
    FieldValidationResponse,
    MessageResponse,
    ResendOtpRequest,
)
from auth_service.rate_limit import STRICT, limiter

router = APIRouter(prefix="/api/v1/utils", tags=["utils"])


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    operation_id="resendOtp",
    summary="Mail a new activation OTP",
)
@limiter.limit(STRICT)
async def resend_otp(request: Request, body: ResendOtpRequest, accounts: Accounts) -> MessageResponse:
    await accounts.resend_otp(body.email, body.name)
    return MessageResponse(message="OTP has been resent to your email")


@router.post(
    "/validate-field",
    response_model=FieldValidationResponse,
    operation_id="validateField",
    summary="Check whether an email or username is still available",
)
async def validate_field(body: FieldValidationRequest, accounts: Accounts) -> FieldValidationResponse:
    valid, message = await accounts.validate_field(body.field, body.value)
    return FieldValidationResponse(valid=valid, message=message)
