"""
Rate limiting configuration and middleware.

Fixed-window quota per client address, counted with the asyncio API of
the ``limits`` library (the engine behind slowapi). The counter store
is chosen by a storage URI so a single process can count in memory
while several workers share an external store such as Redis. Counting
never blocks the event loop.

Every response carries the draft-8 ``RateLimit`` / ``RateLimit-Policy``
headers; the legacy ``X-RateLimit-*`` set is never sent.
"""

import logging
import math
import time
from dataclasses import dataclass

from limits import RateLimitItem, parse
from limits.aio.storage import MemoryStorage, Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.storage import storage_from_string
from slowapi.util import get_remote_address
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mindsync.shared.errors.handlers import error_response

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = "60/minute"
ASYNC_SCHEME_PREFIX = "async+"
HTTP_429 = 429
RATE_LIMIT_MESSAGE = (
    "You have sent too many request in a given amount of time. "
    "Please try again later."
)


@dataclass(frozen=True)
class RateLimitDecision:
    """Quota state for one client after counting a request.

    Attributes:
        allowed: Whether the request fits in the current window.
        limit: Requests permitted per window.
        remaining: Requests left in the current window.
        reset_after: Whole seconds until the window resets.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_after: int


def format_window(seconds: int) -> str:
    """Render a window length the way policy names spell it (``1min``)."""
    for unit, size in (("day", 86400), ("h", 3600), ("min", 60)):
        if seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def async_storage_uri(storage_uri: str) -> str:
    """Map a storage URI onto its asyncio variant (``redis://`` -> ``async+redis://``)."""
    if storage_uri.startswith(ASYNC_SCHEME_PREFIX):
        return storage_uri
    return ASYNC_SCHEME_PREFIX + storage_uri


class RequestRateLimiter:
    """Counts requests per client key against a fixed-window quota.

    Args:
        limit: Quota in limits notation, e.g. ``"60/minute"``.
        storage: Asyncio counter store. Defaults to a fresh in-memory store.
    """

    def __init__(self, limit: str = DEFAULT_RATE_LIMIT, storage: Storage | None = None) -> None:
        self.item: RateLimitItem = parse(limit)
        self.storage = storage or MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self.storage)

    @classmethod
    def from_uri(cls, limit: str, storage_uri: str) -> "RequestRateLimiter":
        """Build a limiter whose counters live in the store at ``storage_uri``."""
        return cls(limit, storage_from_string(async_storage_uri(storage_uri)))

    @property
    def window_seconds(self) -> int:
        return self.item.get_expiry()

    @property
    def policy_name(self) -> str:
        return f"{self.item.amount}-in-{format_window(self.window_seconds)}"

    async def hit(self, client_key: str) -> RateLimitDecision:
        """Count one request for ``client_key`` and report the quota state.

        The first request in a window opens it with a count of one; the
        request is rejected once the count exceeds the quota.
        """
        allowed = await self._strategy.hit(self.item, client_key)
        stats = await self._strategy.get_window_stats(self.item, client_key)
        reset_after = max(0, math.ceil(stats.reset_time - time.time()))
        return RateLimitDecision(
            allowed=allowed,
            limit=self.item.amount,
            remaining=stats.remaining,
            reset_after=reset_after,
        )

    def headers_for(self, decision: RateLimitDecision) -> dict[str, str]:
        """Draft-8 standard rate limit headers for a decision."""
        policy = f'"{self.policy_name}"'
        headers = {
            "RateLimit-Policy": f"{policy}; q={decision.limit}; w={self.window_seconds}",
            "RateLimit": f"{policy}; r={decision.remaining}; t={decision.reset_after}",
        }
        if not decision.allowed:
            headers["Retry-After"] = str(decision.reset_after)
        return headers

    async def reset(self) -> None:
        """Drop every counter in the store."""
        await self.storage.reset()


class RateLimitMiddleware:
    """Admission gate rejecting clients that exceed their quota.

    Rejected requests get an immediate 429 with a fixed payload and are
    not forwarded further down the pipeline. Admitted responses are
    tagged on their start message; the body passes through untouched.
    """

    def __init__(self, app: ASGIApp, limiter: RequestRateLimiter) -> None:
        self.app = app
        self.limiter = limiter

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        client_key = get_remote_address(Request(scope))
        decision = await self.limiter.hit(client_key)
        headers = self.limiter.headers_for(decision)
        if not decision.allowed:
            logger.info("Rate limit exceeded for %s", client_key)
            response = error_response(HTTP_429, RATE_LIMIT_MESSAGE, headers=headers)
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).update(headers)
            await send(message)

        await self.app(scope, receive, send_with_headers)
