"""
CORS admission policy.

Decides per request whether the ``Origin`` header is acceptable and
rejects the request outright when it is not. Admitted cross-origin
requests get the usual CORS response headers from Starlette's
CORSMiddleware, including preflight handling.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from starlette.datastructures import Headers
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from mindsync.core.config import Settings
from mindsync.shared.errors.exceptions import CorsRejectedError
from mindsync.shared.errors.handlers import mindsync_error_response

logger = logging.getLogger(__name__)

CORS_METHODS = ("GET", "HEAD", "PUT", "PATCH", "POST", "DELETE")


@dataclass(frozen=True)
class CorsDecision:
    """Outcome of evaluating one request origin."""

    allowed: bool
    error: Optional[CorsRejectedError] = None


def evaluate_origin(origin: Optional[str], settings: Settings) -> CorsDecision:
    """Apply the CORS admission rules to a request origin.

    Rules, in order: everything is allowed in development; requests
    without an origin (same-origin or non-browser) are allowed;
    whitelisted origins are allowed; anything else is rejected.

    Args:
        origin: Value of the request's Origin header, if any.
        settings: Loaded application settings.

    Returns:
        The decision, carrying a CorsRejectedError when denied.
    """
    if settings.is_development or not origin:
        return CorsDecision(allowed=True)
    if origin in settings.whitelist_origins:
        return CorsDecision(allowed=True)
    return CorsDecision(allowed=False, error=CorsRejectedError(origin))


class CorsPolicyMiddleware(CORSMiddleware):
    """CORS stage backed by :func:`evaluate_origin`.

    Rejected requests never reach the rest of the pipeline. The rejection
    is logged only after the error response has been sent.
    """

    def __init__(self, app: ASGIApp, settings: Settings) -> None:
        super().__init__(app, allow_methods=CORS_METHODS, allow_headers=["*"])
        self.settings = settings

    def is_allowed_origin(self, origin: str) -> bool:
        return evaluate_origin(origin, self.settings).allowed

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            origin = Headers(scope=scope).get("origin")
            decision = evaluate_origin(origin, self.settings)
            if not decision.allowed:
                response = mindsync_error_response(decision.error)
                await response(scope, receive, send)
                logger.warning(decision.error.message)
                return
        await super().__call__(scope, receive, send)
