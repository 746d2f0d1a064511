"""App-level behavior — health, request ids, error envelope, CORS, config."""

import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import ValidationError
from structlog.testing import capture_logs

from dianji import __version__
from dianji.config import Settings
from dianji.logging import _redact_secrets


# ═══════════════════════════════════════════════════════════
# Health
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_root(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json() == {"name": "Dianji API", "version": __version__, "status": "ok"}


@pytest.mark.asyncio
async def test_health_in_memory_mode(client):
    r = await client.get("/api/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    assert data["database"] == "memory"
    assert data["redis"] == "memory"


# ═══════════════════════════════════════════════════════════
# Request context
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_request_id_generated(client):
    r = await client.get("/")
    assert len(r.headers["X-Request-ID"]) == 36


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/", headers={"X-Request-ID": "trace-123"})
    assert r.headers["X-Request-ID"] == "trace-123"


# ═══════════════════════════════════════════════════════════
# Error envelope
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_unknown_route(client):
    r = await client.get("/api/nope")
    assert r.status_code == 404
    assert r.json()["error"] == "Not Found"


@pytest.mark.asyncio
async def test_malformed_json_body(client):
    r = await client.post(
        "/api/auth/login", content="{not json", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 400
    assert r.json()["code"] == "validation_error"


@pytest.mark.asyncio
async def test_unexpected_error_is_generic_500(app):
    async def boom():
        raise RuntimeError("connection string postgres://secret@db leaked")

    app.add_api_route("/api/boom", boom)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        r = await ac.get("/api/boom")

    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error", "code": "server_error"}
    assert "postgres" not in r.text


@pytest.mark.asyncio
async def test_crashed_request_keeps_request_id_and_access_log(app):
    async def boom():
        raise RuntimeError("boom")

    app.add_api_route("/api/boom", boom)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    with capture_logs() as logs:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            r = await ac.get("/api/boom", headers={"X-Request-ID": "trace-500"})

    assert r.status_code == 500
    assert r.headers["X-Request-ID"] == "trace-500"
    access = [e for e in logs if e["event"] == "http.request"]
    assert access and access[0]["status"] == 500
    assert access[0]["path"] == "/api/boom"


# ═══════════════════════════════════════════════════════════
# CORS
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_cors_allows_app_origin(client):
    r = await client.options(
        "/api/auth/login",
        headers={
            "Origin": "https://dianji.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "https://dianji.example"
    assert r.headers["access-control-allow-credentials"] == "true"


@pytest.mark.asyncio
async def test_cors_ignores_unknown_origin(client):
    r = await client.get("/", headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in r.headers


# ═══════════════════════════════════════════════════════════
# Settings and logging
# ═══════════════════════════════════════════════════════════


def test_rate_limit_defaults():
    settings = Settings()
    assert settings.rate_limit_rule("auth").window_seconds == 300
    assert settings.rate_limit_rule("auth").max_requests == 20
    assert settings.rate_limit_rule("invite").max_requests == 10
    assert settings.rate_limit_rule("upload").max_requests == 30


def test_rate_limit_override_keeps_other_defaults():
    settings = Settings(rate_limits={"auth": {"window_seconds": 60, "max_requests": 5}})
    assert settings.rate_limit_rule("auth").max_requests == 5
    assert settings.rate_limit_rule("invite").max_requests == 10


def test_production_rejects_default_secret():
    with pytest.raises(ValidationError):
        Settings(environment="production")


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DIANJI_JWT_SECRET", "from-env-secret-0123456789")
    monkeypatch.setenv("DIANJI_FAMILY_MAX_MEMBERS", "4")
    settings = Settings()
    assert settings.jwt_secret == "from-env-secret-0123456789"
    assert settings.family_max_members == 4


def test_log_redaction():
    event = _redact_secrets(None, "info", {"event": "x", "password": "hunter22", "user": "bob"})
    assert event["password"] == "hu***"
    assert event["user"] == "bob"
