"""
Request body parsing stages.

Each parser buffers the body of requests with a matching content type,
decodes it onto ``request.state`` and replays the raw bytes to the rest
of the application, so route handlers can still read the body normally.
Malformed bodies stop the pipeline with a client error. A client that
disconnects before the body is complete gets no response at all.
"""

import json
from typing import Any

from starlette.datastructures import Headers
from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from mindsync.shared.errors.exceptions import (
    BodyParseError,
    MindSyncError,
    PayloadTooLargeError,
)
from mindsync.shared.errors.handlers import mindsync_error_response
from mindsync.shared.parsing.forms import decode_nested_form

DEFAULT_BODY_LIMIT = 102_400  # 100 KiB


def media_type(headers: Headers) -> str:
    """Return the bare media type of the request, lowercased."""
    return headers.get("content-type", "").split(";", 1)[0].strip().lower()


async def read_body(receive: Receive, limit: int) -> bytes:
    """Drain the request body from ``receive``, enforcing ``limit`` bytes."""
    chunks: list[bytes] = []
    size = 0
    more_body = True
    while more_body:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise ClientDisconnect()
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise PayloadTooLargeError()
        chunks.append(chunk)
        more_body = message.get("more_body", False)
    return b"".join(chunks)


def replay(body: bytes, receive: Receive) -> Receive:
    """Return a receive callable that yields ``body`` once, then defers."""
    delivered = False

    async def receive_replayed() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return receive_replayed


class BodyParserMiddleware:
    """Base ASGI stage for content-type specific body parsers.

    Subclasses set ``media_types`` and ``state_key`` and implement
    :meth:`parse`.
    """

    media_types: tuple[str, ...] = ()
    state_key = "body"

    def __init__(self, app: ASGIApp, limit: int = DEFAULT_BODY_LIMIT) -> None:
        self.app = app
        self.limit = limit

    def parse(self, body: bytes) -> Any:
        raise NotImplementedError

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        headers = Headers(scope=scope)
        if media_type(headers) not in self.media_types:
            await self.app(scope, receive, send)
            return

        try:
            declared = int(headers.get("content-length", "0"))
        except ValueError:
            declared = 0
        try:
            if declared > self.limit:
                raise PayloadTooLargeError()
            body = await read_body(receive, self.limit)
            parsed = self.parse(body)
        except MindSyncError as exc:
            response = mindsync_error_response(exc)
            await response(scope, receive, send)
            return
        except ClientDisconnect:
            return

        scope.setdefault("state", {})[self.state_key] = parsed
        await self.app(scope, replay(body, receive), send)


def _decode_text(body: bytes) -> str:
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise BodyParseError("request body is not valid UTF-8") from exc


class JsonBodyMiddleware(BodyParserMiddleware):
    """Parses ``application/json`` bodies onto ``request.state.json_body``.

    Only objects and arrays are accepted at the top level. An empty body
    parses to an empty object.
    """

    media_types = ("application/json",)
    state_key = "json_body"

    def parse(self, body: bytes) -> Any:
        text = _decode_text(body).strip()
        if not text:
            return {}
        if text[0] not in "{[":
            raise BodyParseError("JSON body must be an object or an array")
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise BodyParseError(f"Malformed JSON body: {exc.msg}") from exc


class UrlEncodedBodyMiddleware(BodyParserMiddleware):
    """Parses form bodies onto ``request.state.form_body`` with nesting."""

    media_types = ("application/x-www-form-urlencoded",)
    state_key = "form_body"

    def parse(self, body: bytes) -> Any:
        return decode_nested_form(_decode_text(body))
