"""
Health check endpoint.
"""

from fastapi import APIRouter

from auth_service.models import HealthResponse

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    operation_id="getHealth",
    summary="Health check",
)
async def get_health() -> HealthResponse:
    return HealthResponse(message="Auth service is healthy!")
