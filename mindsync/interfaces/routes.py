"""
Route mounter.

Attaches the liveness endpoint and delegates the versioned API prefix
to its route table.
"""

from typing import Optional

from fastapi import APIRouter, FastAPI

from mindsync.api.v1.router import API_V1_PREFIX
from mindsync.api.v1.router import router as api_v1_router
from mindsync.interfaces.health import router as health_router
from mindsync.interfaces.schemas import ErrorResponse


def mount_routes(app: FastAPI, api_router: Optional[APIRouter] = None) -> None:
    """Attach the health endpoint and the ``/api/v1`` route table.

    Args:
        app: The FastAPI application instance.
        api_router: Route table for ``/api/v1``. Defaults to the
            service's own v1 router.
    """
    app.include_router(health_router)
    app.include_router(
        api_router if api_router is not None else api_v1_router,
        prefix=API_V1_PREFIX,
        responses={
            403: {"model": ErrorResponse, "description": "Origin not allowed"},
            429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        },
    )
