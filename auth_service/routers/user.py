"""
Account lookup for the logged-in user.
"""

from fastapi import APIRouter

from auth_service.dependencies import CurrentUser
from auth_service.models import UserInfo, UserResponse

router = APIRouter(prefix="/api/v1/user", tags=["user"])


@router.get(
    "/me",
    response_model=UserResponse,
    operation_id="getMe",
    summary="Get current authenticated user info",
)
async def get_me(current_user: CurrentUser) -> UserResponse:
    return UserResponse(user=UserInfo.model_validate(current_user))
