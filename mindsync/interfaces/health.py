"""
Health check router.

Provides a liveness endpoint for load balancers and orchestrators.
Answers every method and does not depend on configuration state.
"""

from fastapi import APIRouter

from mindsync.interfaces.schemas import HealthResponse

HEALTH_MESSAGE = "MindSync is OK!"
HEALTH_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter(tags=["health"])


@router.api_route(
    "/health",
    methods=HEALTH_METHODS,
    response_model=HealthResponse,
    summary="Health check",
    description="Returns a fixed liveness payload.",
)
def health_check() -> HealthResponse:
    """Return the fixed liveness payload."""
    return HealthResponse(status=True, message=HEALTH_MESSAGE)
