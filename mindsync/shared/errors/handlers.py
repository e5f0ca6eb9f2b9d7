"""
Centralized error handlers for FastAPI.

Maps pipeline and route errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ``{"error": ...}`` body shape.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mindsync.shared.errors.exceptions import MindSyncError

logger = logging.getLogger(__name__)

HTTP_500 = 500


def error_response(
    status_code: int,
    error: str,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    return JSONResponse(
        status_code=status_code, content={"error": error}, headers=headers
    )


def mindsync_error_response(exc: MindSyncError) -> JSONResponse:
    """Translate a MindSyncError into its JSON response.

    Used both by the registered exception handler and by pipeline
    stages, which run outside FastAPI's exception handling.
    """
    return error_response(exc.status_code, exc.message)


def register_error_handlers(app: FastAPI) -> None:
    """Register error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(MindSyncError)
    async def handle_mindsync_error(
        _request: Request, exc: MindSyncError
    ) -> JSONResponse:
        """Handle errors raised by route handlers."""
        logger.warning("Request failed: %s", exc.message)
        return mindsync_error_response(exc)

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return error_response(HTTP_500, "Internal server error")
