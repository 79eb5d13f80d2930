"""
Wayfarer Backend — Middleware Pipeline Tests
==============================================

What:  Behaviour of each pipeline stage, observed through real requests.
How:   An echo route is mounted on the app under test that echoes what the
       pipeline left on request.state.

What we test:
    ✅ Static files short-circuit (and path traversal does not)
    ✅ Security headers on every response, X-Request-ID echoed
    ✅ Body size cap (413) and malformed JSON (400)
    ✅ Injection keys dropped, string values HTML-escaped
    ✅ Parameter pollution collapsed, request time stamped, cookies parsed
    ✅ Development access log only in development mode
"""

import json
import logging

import pytest
import pytest_asyncio
from fastapi import Request

from app.middleware.parameter_pollution import collapse_query
from app.middleware.sanitize import escape_html, strip_forbidden_keys
from app.middleware.static_files import StaticFilesMiddleware
from conftest import make_client


@pytest.fixture
def echo_app(app):
    """The test app plus /api/v1/_echo, which reports request.state."""

    async def echo(request: Request):
        return {
            "body": request.state.body,
            "query": request.state.query,
            "cookies": request.state.cookies,
            "requestTime": request.state.request_time,
            "requestId": request.state.request_id,
        }

    app.router.add_api_route("/api/v1/_echo", echo, methods=["GET", "POST"])
    # The catch-all must stay last
    app.router.routes.insert(0, app.router.routes.pop())
    return app


@pytest_asyncio.fixture
async def echo_client(echo_app):
    async with make_client(echo_app) as c:
        yield c


class TestStaticFiles:

    @pytest.mark.asyncio
    async def test_existing_file_is_served(self, client):
        response = await client.get("/css/style.css")
        assert response.status_code == 200
        assert "text/css" in response.headers["content-type"]

    def test_lookup_refuses_traversal(self, tmp_path):
        public = tmp_path / "public"
        public.mkdir()
        (tmp_path / "secret.txt").write_text("nope")
        (public / "ok.txt").write_text("ok")

        stage = StaticFilesMiddleware(app=None, directory=str(public))
        assert stage.lookup("/ok.txt") == (public / "ok.txt").resolve()
        assert stage.lookup("/../secret.txt") is None
        assert stage.lookup("/") is None
        assert stage.lookup("/missing.txt") is None


class TestHeaders:

    @pytest.mark.asyncio
    async def test_security_headers_on_api_response(self, client):
        response = await client.get("/api/v1/tours")
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "SAMEORIGIN"
        assert response.headers["strict-transport-security"].startswith("max-age=15552000")
        assert "content-security-policy" in response.headers

    @pytest.mark.asyncio
    async def test_security_headers_on_error_response(self, client):
        response = await client.get("/api/v1/nowhere")
        assert response.status_code == 404
        assert response.headers["x-content-type-options"] == "nosniff"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/api/v1/tours", headers={"X-Request-ID": "abc12345"})
        assert response.headers["x-request-id"] == "abc12345"


class TestBodyParser:

    @pytest.mark.asyncio
    async def test_body_over_10kb_rejected(self, client):
        payload = {"name": "x" * 11_000}
        response = await client.post("/api/v1/tours", json=payload)
        assert response.status_code == 413
        assert response.json()["status"] == "fail"

    @pytest.mark.asyncio
    async def test_malformed_json_rejected(self, client):
        response = await client.post(
            "/api/v1/tours",
            content=b'{"name": ',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Request body could not be parsed")

    @pytest.mark.asyncio
    async def test_body_exposed_on_state(self, echo_client):
        response = await echo_client.post("/api/v1/_echo", json={"name": "Tour"})
        assert response.json()["body"] == {"name": "Tour"}

    @pytest.mark.asyncio
    async def test_chunked_body_over_limit_stops_reading(self, client):
        sent = []

        async def chunks():
            for _ in range(20):
                sent.append(1)
                yield b"x" * 1024

        response = await client.post(
            "/api/v1/tours", content=chunks(), headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 413
        assert len(sent) < 20

    @pytest.mark.asyncio
    async def test_chunked_body_within_limit_decoded(self, echo_client):
        raw = json.dumps({"name": "Chunked Tour", "price": 397}).encode()

        async def chunks():
            for i in range(0, len(raw), 8):
                yield raw[i:i + 8]

        response = await echo_client.post(
            "/api/v1/_echo", content=chunks(), headers={"Content-Type": "application/json"}
        )
        assert response.json()["body"] == {"name": "Chunked Tour", "price": 397}


class TestSanitization:

    def test_strip_forbidden_keys_recursive(self):
        cleaned = strip_forbidden_keys(
            {"email": {"$gt": ""}, "a.b": 1, "ok": [{"$ne": 1, "x": 2}], "name": "n"}
        )
        assert cleaned == {"email": {}, "ok": [{"x": 2}], "name": "n"}

    def test_escape_html_recursive(self):
        assert escape_html({"n": "<script>alert(1)</script>", "k": [1, "a&b"]}) == {
            "n": "&lt;script>alert(1)&lt;/script>",
            "k": [1, "a&b"],
        }

    @pytest.mark.asyncio
    async def test_injection_and_xss_through_pipeline(self, echo_client):
        response = await echo_client.post(
            "/api/v1/_echo?$where=1&name=<b>x</b>",
            json={"email": {"$gt": ""}, "bio": "<img src=x onerror=alert(1)>"},
        )
        state = response.json()
        assert state["body"] == {"email": {}, "bio": "&lt;img src=x onerror=alert(1)>"}
        assert state["query"] == {"name": "&lt;b>x&lt;/b>"}


class TestParameterPollution:

    def test_collapse_query(self):
        items = [("sort", "duration"), ("sort", "price"), ("duration", "5"), ("duration", "9"),
                 ("difficulty", "easy")]
        assert collapse_query(items, ["duration", "difficulty"]) == {
            "sort": "price",
            "duration": ["5", "9"],
            "difficulty": "easy",
        }

    @pytest.mark.asyncio
    async def test_query_on_state(self, echo_client):
        response = await echo_client.get("/api/v1/_echo?sort=a&sort=b&price=1&price=2")
        assert response.json()["query"] == {"sort": "b", "price": ["1", "2"]}


class TestStateStamps:

    @pytest.mark.asyncio
    async def test_request_time_and_cookies(self, echo_client):
        response = await echo_client.get("/api/v1/_echo", headers={"Cookie": "jwt=token-value"})
        state = response.json()
        assert state["requestTime"].endswith("+00:00")
        assert state["cookies"] == {"jwt": "token-value"}
        assert state["requestId"]


class TestDevelopmentLogging:

    @pytest.mark.asyncio
    async def test_logs_in_development(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="wayfarer.access"):
            await client.get("/api/v1/tours?difficulty=easy")
        assert any("GET /api/v1/tours?difficulty=easy 200" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_silent_in_production(self, client, production, caplog):
        with caplog.at_level(logging.INFO, logger="wayfarer.access"):
            await client.get("/api/v1/tours")
        assert not [r for r in caplog.records if r.name == "wayfarer.access"]
