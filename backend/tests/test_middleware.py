from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from classgrid.core.config import get_settings
from classgrid.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware, security_headers


def _echo_app(**settings_overrides) -> FastAPI:
    settings = get_settings().model_copy(update=settings_overrides)
    app = FastAPI()

    @app.post("/echo")
    async def echo(payload: dict):
        return payload

    @app.get("/framed")
    async def framed():
        return JSONResponse({"ok": True}, headers={"X-Frame-Options": "SAMEORIGIN"})

    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=32)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    return app


def test_hsts_is_off_by_default():
    assert "Strict-Transport-Security" not in security_headers(get_settings())


def test_hsts_uses_configured_max_age():
    client = TestClient(_echo_app(security_enable_hsts=True, security_hsts_max_age_seconds=600))

    response = client.post("/echo", json={"a": 1})

    assert response.status_code == 200
    assert response.headers["Strict-Transport-Security"] == "max-age=600; includeSubDomains"
    assert response.headers["Cache-Control"] == "no-store"


def test_handler_headers_win_over_defaults():
    client = TestClient(_echo_app())

    response = client.get("/framed")

    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_body_at_the_limit_passes():
    client = TestClient(_echo_app())
    body = b'{"a": "' + b"x" * 23 + b'"}'
    assert len(body) == 32

    response = client.post("/echo", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 200


def test_oversized_body_gets_error_envelope():
    client = TestClient(_echo_app())

    response = client.post("/echo", content=b"x" * 33, headers={"Content-Type": "application/json"})

    assert response.status_code == 413
    assert response.json() == {
        "message": "Request body too large (33 bytes). Maximum allowed is 32 bytes.",
        "details": {"content_length": 33, "max_bytes": 32},
    }
    # Security headers still apply to rejected requests.
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_malformed_content_length_is_rejected():
    client = TestClient(_echo_app())

    response = client.post(
        "/echo",
        content=b"{}",
        headers={"Content-Type": "application/json", "Content-Length": "abc"},
    )

    assert response.status_code == 400
    assert response.json()["details"] == {"content_length": "abc"}
