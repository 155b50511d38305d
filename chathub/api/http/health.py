"""Health check endpoint for monitoring service status."""

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

router = APIRouter()


class HealthResponse(BaseModel):  # type: ignore[misc]
    """Response model for health check endpoint."""

    status: str
    active_connections: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    tags=["health"],
)
async def health_check(request: Request) -> HealthResponse:
    """
    Report service status and the number of live hub connections.

    The hub has no external dependencies, so the service is healthy as
    long as it can answer.
    """
    return HealthResponse(
        status="healthy",
        active_connections=len(request.app.state.registry),
    )
