"""
Cookie parsing stage.

Exposes the request's cookies as ``request.state.cookies``. Values
written as ``j:<json>`` are decoded into the JSON value they carry.
"""

import json
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request, cookie_parser
from starlette.responses import Response

JSON_COOKIE_PREFIX = "j:"


def decode_json_cookie(value: str) -> Any:
    """Decode a ``j:`` JSON cookie, returning the raw value when it is not one."""
    if not value.startswith(JSON_COOKIE_PREFIX):
        return value
    try:
        return json.loads(value[len(JSON_COOKIE_PREFIX):])
    except json.JSONDecodeError:
        return value


def parse_cookies(header: str) -> dict[str, Any]:
    """Parse a Cookie header into a dict, decoding JSON cookies."""
    return {
        name: decode_json_cookie(value)
        for name, value in cookie_parser(header).items()
    }


class CookieParserMiddleware(BaseHTTPMiddleware):
    """Middleware that parses the Cookie header once per request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request.state.cookies = parse_cookies(request.headers.get("cookie", ""))
        return await call_next(request)
