"""
Tests for the request pipeline.

Covers stage order, body and cookie parsing, compression and the
security header policy, each through the assembled application.
"""

import asyncio
import json
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
from starlette.middleware.gzip import GZipMiddleware

from mindsync.main import create_app
from mindsync.shared.parsing.body import JsonBodyMiddleware, UrlEncodedBodyMiddleware
from mindsync.shared.parsing.cookies import CookieParserMiddleware, parse_cookies
from mindsync.shared.pipeline import PIPELINE_STAGES, build_pipeline
from mindsync.shared.security.cors import CorsPolicyMiddleware
from mindsync.shared.security.headers import SECURE_HEADERS, SecurityHeadersMiddleware
from mindsync.shared.security.rate_limiting import RateLimitMiddleware, RequestRateLimiter

FORM = "application/x-www-form-urlencoded"


class TestStageOrder:
    """The pipeline is an explicit, ordered list of stages."""

    def test_stage_names_in_order(self, make_settings) -> None:
        stages = build_pipeline(make_settings(), RequestRateLimiter())
        assert tuple(stage.name for stage in stages) == PIPELINE_STAGES
        assert PIPELINE_STAGES == (
            "cors",
            "json",
            "urlencoded",
            "cookies",
            "compression",
            "security_headers",
            "rate_limit",
        )

    def test_application_installs_stages_outermost_first(self, make_settings) -> None:
        app = create_app(make_settings())
        assert [middleware.cls for middleware in app.user_middleware] == [
            CorsPolicyMiddleware,
            JsonBodyMiddleware,
            UrlEncodedBodyMiddleware,
            CookieParserMiddleware,
            GZipMiddleware,
            SecurityHeadersMiddleware,
            RateLimitMiddleware,
        ]

    def test_stage_options_follow_settings(self, make_settings) -> None:
        settings = make_settings(body_limit_bytes=512, compression_min_size=2048)
        limiter = RequestRateLimiter()
        options = {stage.name: stage.options for stage in build_pipeline(settings, limiter)}
        assert options["cors"] == {"settings": settings}
        assert options["json"] == {"limit": 512}
        assert options["compression"] == {"minimum_size": 2048}
        assert options["rate_limit"] == {"limiter": limiter}


class TestJsonBody:
    """Tests for the JSON body parsing stage."""

    def test_parsed_body_on_state(self, client: TestClient) -> None:
        response = client.post("/api/v1/echo", json={"mood": "calm", "tags": [1, 2]})
        assert response.status_code == 200
        assert response.json()["json"] == {"mood": "calm", "tags": [1, 2]}

    def test_raw_body_still_readable(self, client: TestClient) -> None:
        payload = {"mood": "calm"}
        response = client.post("/api/v1/echo", json=payload)
        assert json.loads(response.json()["raw"]) == payload

    def test_malformed_json_is_client_error(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo",
            content=b'{"mood": ',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("Malformed JSON body")

    def test_top_level_scalar_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo",
            content=b'"just a string"',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400

    def test_empty_body_is_empty_object(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo", content=b"", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200
        assert response.json()["json"] == {}

    def test_charset_parameter_accepted(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo",
            content=b"[1, 2]",
            headers={"Content-Type": "application/json; charset=utf-8"},
        )
        assert response.json()["json"] == [1, 2]

    def test_body_over_limit_is_413(self, make_client) -> None:
        client = make_client(body_limit_bytes=16)
        response = client.post("/api/v1/echo", json={"text": "x" * 64})
        assert response.status_code == 413

    def test_other_content_types_untouched(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo", content=b"{not json", headers={"Content-Type": "text/plain"}
        )
        assert response.status_code == 200
        assert response.json()["json"] is None
        assert response.json()["raw"] == "{not json"


class TestUrlEncodedBody:
    """Tests for the URL-encoded body parsing stage."""

    def test_nested_form_on_state(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo",
            content=b"user[name]=ada&user[langs][]=py&user[langs][]=c&remember=on",
            headers={"Content-Type": FORM},
        )
        assert response.status_code == 200
        assert response.json()["form"] == {
            "user": {"name": "ada", "langs": ["py", "c"]},
            "remember": "on",
        }

    def test_raw_form_still_readable(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo", content=b"a=1&b=2", headers={"Content-Type": FORM}
        )
        assert response.json()["raw"] == "a=1&b=2"

    def test_invalid_encoding_is_client_error(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/echo", content=b"a=\xff\xfe", headers={"Content-Type": FORM}
        )
        assert response.status_code == 400


class TestClientDisconnect:
    """A client leaving mid-body ends the request quietly."""

    def _run(self, middleware_class) -> tuple[AsyncMock, list]:
        downstream = AsyncMock()
        sent: list = []
        scope = {
            "type": "http",
            "method": "POST",
            "path": "/api/v1/echo",
            "headers": [(b"content-type", middleware_class.media_types[0].encode())],
        }

        async def receive() -> dict:
            return {"type": "http.disconnect"}

        async def send(message: dict) -> None:
            sent.append(message)

        asyncio.run(middleware_class(downstream)(scope, receive, send))
        return downstream, sent

    def test_json_stage_returns_without_response(self) -> None:
        downstream, sent = self._run(JsonBodyMiddleware)
        downstream.assert_not_called()
        assert sent == []

    def test_form_stage_returns_without_response(self) -> None:
        downstream, sent = self._run(UrlEncodedBodyMiddleware)
        downstream.assert_not_called()
        assert sent == []


class TestCookies:
    """Tests for the cookie parsing stage."""

    def test_cookies_on_state(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/echo",
            headers={"Cookie": 'session=abc123; prefs=j:{"theme":"dark"}'},
        )
        assert response.json()["cookies"] == {
            "session": "abc123",
            "prefs": {"theme": "dark"},
        }

    def test_no_cookie_header(self, client: TestClient) -> None:
        assert client.get("/api/v1/echo").json()["cookies"] == {}

    def test_invalid_json_cookie_kept_raw(self) -> None:
        assert parse_cookies("prefs=j:{broken") == {"prefs": "j:{broken"}


class TestCompression:
    """Responses are compressed from the configured size on."""

    def test_large_response_is_gzipped(self, client: TestClient) -> None:
        response = client.get("/api/v1/large", headers={"Accept-Encoding": "gzip"})
        assert response.headers["content-encoding"] == "gzip"
        assert response.text == "x" * 4096

    def test_small_response_is_not_compressed(self, client: TestClient) -> None:
        response = client.get("/api/v1/small", headers={"Accept-Encoding": "gzip"})
        assert "content-encoding" not in response.headers
        assert response.text == "ok"

    def test_client_without_gzip_gets_identity(self, client: TestClient) -> None:
        response = client.get(
            "/api/v1/large", headers={"Accept-Encoding": "identity"}
        )
        assert "content-encoding" not in response.headers

    def test_health_is_not_compressed(self, client: TestClient) -> None:
        response = client.get("/health", headers={"Accept-Encoding": "gzip"})
        assert "content-encoding" not in response.headers
        assert response.json() == {"status": True, "message": "MindSync is OK!"}

    def test_headers_survive_below_threshold(self, client: TestClient) -> None:
        """Header stages inside compression must not force a streamed body."""
        response = client.get("/api/v1/small", headers={"Accept-Encoding": "gzip"})
        assert "content-encoding" not in response.headers
        assert response.headers["content-length"] == "2"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["ratelimit-policy"].startswith('"60-in-1min"')

    def test_compressed_response_keeps_stage_headers(self, client: TestClient) -> None:
        response = client.get("/api/v1/large", headers={"Accept-Encoding": "gzip"})
        assert response.headers["content-encoding"] == "gzip"
        assert response.headers["x-frame-options"] == "SAMEORIGIN"
        assert "ratelimit" in response.headers


class TestSecurityHeaders:
    """Tests for security headers on responses."""

    def test_security_headers_present(self, client: TestClient) -> None:
        """All security headers must be present on every response."""
        response = client.get("/health")
        for header_name, header_value in SECURE_HEADERS.items():
            assert response.headers[header_name] == header_value

    def test_security_headers_on_not_found(self, client: TestClient) -> None:
        response = client.get("/missing")
        assert response.status_code == 404
        assert response.headers["x-frame-options"] == "SAMEORIGIN"
