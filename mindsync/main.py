"""
Application entry point.

Creates the FastAPI application and wires together:
- Request pipeline (CORS, body parsing, cookies, compression,
  security headers, rate limiting)
- Error handlers (centralized error-to-HTTP mapping)
- Routes (health check and the versioned API table)

No business logic belongs here.
"""

from typing import Optional

from fastapi import APIRouter, FastAPI

from mindsync.core.config import Settings, get_settings
from mindsync.interfaces.routes import mount_routes
from mindsync.shared.errors.handlers import register_error_handlers
from mindsync.shared.pipeline import as_middleware, build_pipeline
from mindsync.shared.security.rate_limiting import RequestRateLimiter


def create_app(
    settings: Optional[Settings] = None,
    *,
    limiter: Optional[RequestRateLimiter] = None,
    api_router: Optional[APIRouter] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    This is the composition root of the application.

    Args:
        settings: Settings record; read from the environment when omitted.
        limiter: Rate limiter; built from the settings when omitted.
        api_router: Route table mounted under ``/api/v1``.

    Returns:
        A fully configured FastAPI application instance.
    """
    settings = settings or get_settings()
    limiter = limiter or RequestRateLimiter.from_uri(
        settings.rate_limit_default, settings.rate_limit_storage_uri
    )

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        middleware=as_middleware(build_pipeline(settings, limiter)),
    )
    app.state.settings = settings
    app.state.limiter = limiter

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    mount_routes(app, api_router)

    return app


app = create_app()
