"""
Request pipeline assembly.

The middleware chain is an explicit, ordered list of named stages.
Stages run outermost first; any stage may answer the request itself
and stop the traversal. Because rate limiting is the innermost stage,
its rejections still pass back out through the security header and
compression stages.
"""

from dataclasses import dataclass
from typing import Any

from starlette.middleware import Middleware
from starlette.middleware.gzip import GZipMiddleware

from mindsync.core.config import Settings
from mindsync.shared.parsing.body import JsonBodyMiddleware, UrlEncodedBodyMiddleware
from mindsync.shared.parsing.cookies import CookieParserMiddleware
from mindsync.shared.security.cors import CorsPolicyMiddleware
from mindsync.shared.security.headers import SecurityHeadersMiddleware
from mindsync.shared.security.rate_limiting import RateLimitMiddleware, RequestRateLimiter

PIPELINE_STAGES = (
    "cors",
    "json",
    "urlencoded",
    "cookies",
    "compression",
    "security_headers",
    "rate_limit",
)


@dataclass(frozen=True)
class PipelineStage:
    """One named step of the request pipeline."""

    name: str
    middleware_class: type
    options: dict[str, Any]

    def as_middleware(self) -> Middleware:
        return Middleware(self.middleware_class, **self.options)


def build_pipeline(settings: Settings, limiter: RequestRateLimiter) -> list[PipelineStage]:
    """Return the request pipeline in execution order.

    Args:
        settings: Loaded application settings.
        limiter: Rate limiter holding the per-client counters.

    Returns:
        Stages ordered as listed in ``PIPELINE_STAGES``.
    """
    return [
        PipelineStage("cors", CorsPolicyMiddleware, {"settings": settings}),
        PipelineStage("json", JsonBodyMiddleware, {"limit": settings.body_limit_bytes}),
        PipelineStage(
            "urlencoded", UrlEncodedBodyMiddleware, {"limit": settings.body_limit_bytes}
        ),
        PipelineStage("cookies", CookieParserMiddleware, {}),
        PipelineStage(
            "compression", GZipMiddleware, {"minimum_size": settings.compression_min_size}
        ),
        PipelineStage("security_headers", SecurityHeadersMiddleware, {}),
        PipelineStage("rate_limit", RateLimitMiddleware, {"limiter": limiter}),
    ]


def as_middleware(stages: list[PipelineStage]) -> list[Middleware]:
    """Convert stages into Starlette's middleware list (outermost first)."""
    return [stage.as_middleware() for stage in stages]
