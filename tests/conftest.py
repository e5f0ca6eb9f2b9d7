"""
Shared fixtures.

Settings are always built explicitly so the test run never depends on
the caller's environment or a local .env file.
"""

from typing import Callable

import pytest
from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from fastapi.testclient import TestClient

from mindsync.core.config import Settings
from mindsync.main import create_app

LARGE_BODY_SIZE = 4096


def _make_settings(**overrides) -> Settings:
    values = {"node_env": "production", "node_origin": None, "port": 3000}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _build_echo_router() -> APIRouter:
    """Route table that reflects what the pipeline attached to the request."""
    router = APIRouter()

    @router.api_route("/echo", methods=["GET", "POST"])
    async def echo(request: Request) -> dict:
        raw = await request.body()
        return {
            "json": getattr(request.state, "json_body", None),
            "form": getattr(request.state, "form_body", None),
            "cookies": getattr(request.state, "cookies", None),
            "raw": raw.decode("utf-8"),
        }

    @router.get("/large", response_class=PlainTextResponse)
    async def large() -> str:
        return "x" * LARGE_BODY_SIZE

    @router.get("/small", response_class=PlainTextResponse)
    async def small() -> str:
        return "ok"

    return router


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Factory for Settings isolated from the environment (production by default)."""
    return _make_settings


@pytest.fixture
def make_client() -> Callable[..., TestClient]:
    """Factory for a client on an app with the echo route table mounted."""

    def factory(**overrides) -> TestClient:
        app = create_app(_make_settings(**overrides), api_router=_build_echo_router())
        return TestClient(app)

    return factory


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    return make_client()
