"""
Hardening Middleware Tests
tests/test_middleware.py

Input sanitization, body size limit, security headers and request ids.
"""

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from matchpod.api.middleware import (
    SanitizeInputMiddleware,
    sanitize_query_string,
    sanitize_string,
    sanitize_value,
)


class TestSanitizeFunctions:

    def test_strips_markup(self):
        assert sanitize_string('<script>alert("x")</script>') == "scriptalert(x)/script"

    def test_strips_script_protocols(self):
        assert sanitize_string("javascript:alert(1)") == "alert(1)"
        assert sanitize_string("DATA:text/html;base64,AAA") == "text/html;base64,AAA"

    def test_trims(self):
        assert sanitize_string("  Ann  ") == "Ann"

    def test_nested_values(self):
        payload = {"bio": "<b>hi</b>", "tags": ["<i>", "ok"], "age": 27, "verified": True}

        assert sanitize_value(payload) == {"bio": "bhi/b", "tags": ["i", "ok"], "age": 27, "verified": True}

    def test_keys_untouched(self):
        assert sanitize_value({"<key>": "value"}) == {"<key>": "value"}

    def test_query_string(self):
        assert sanitize_query_string(b"q=%3Cb%3EAnn&page=2") == b"q=bAnn&page=2"


def make_echo_app(max_body_size: int = 1024) -> FastAPI:
    app = FastAPI()
    app.add_middleware(SanitizeInputMiddleware, max_body_size=max_body_size)

    @app.post("/echo")
    async def echo(request: Request):
        return {"body": (await request.body()).decode("utf-8"), "query": dict(request.query_params)}

    return app


class TestSanitizeInputMiddleware:

    def test_json_body_sanitized(self):
        with TestClient(make_echo_app()) as client:
            response = client.post("/echo", json={"name": "<b>Ann</b>", "age": 27})

        assert response.json()["body"] == '{"name": "bAnn/b", "age": 27}'

    def test_query_sanitized(self):
        with TestClient(make_echo_app()) as client:
            response = client.post("/echo", params={"city": "<Pune>"})

        assert response.json()["query"] == {"city": "Pune"}

    def test_non_json_body_untouched(self):
        with TestClient(make_echo_app()) as client:
            response = client.post("/echo", content=b"<raw>", headers={"Content-Type": "text/plain"})

        assert response.json()["body"] == "<raw>"

    def test_invalid_json_passed_through(self):
        with TestClient(make_echo_app()) as client:
            response = client.post("/echo", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.json()["body"] == "{not json"

    def test_oversized_body_rejected(self):
        with TestClient(make_echo_app(max_body_size=16)) as client:
            response = client.post("/echo", json={"bio": "x" * 100})

        assert response.status_code == 413
        assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"


class TestSecurityHeaders:

    def test_headers_present(self, client):
        response = client.get("/api")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "max-age=31536000" in response.headers["Strict-Transport-Security"]
        assert "default-src 'self'" in response.headers["Content-Security-Policy"]

    def test_headers_on_errors(self, client):
        response = client.get("/api/missing")

        assert response.status_code == 404
        assert response.headers["X-Frame-Options"] == "DENY"


class TestRequestContext:

    def test_request_id_generated(self, client):
        response = client.get("/api")

        assert len(response.headers["X-Request-ID"]) == 36
        assert response.headers["X-Response-Time"].endswith("ms")

    def test_request_id_propagated(self, client):
        response = client.get("/api", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
