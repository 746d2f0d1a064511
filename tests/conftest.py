"""Test fixtures — a fresh in-memory app per test.

Learn: create_app() with storage_backend="memory" wires a
MemoryCredentialStore and MemoryCounterStore into app.state, so every test
gets isolated accounts, families and rate-limit counters without Postgres
or Redis. httpx's ASGITransport drives the real middleware, guards and
exception handlers.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from dianji.config import Settings
from dianji.main import create_app

TEST_SECRET = "test-secret-0123456789-abcdefghijklmnop"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        storage_backend="memory",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        cookie_secure=False,
        app_url="https://dianji.example",
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def store(app):
    return app.state.memory_store


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(client, email="a@x.com", password="abc12345", name="A", family_name="F"):
    """Register a family creator and return the response."""
    return await client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "name": name, "familyName": family_name},
    )


async def join(client, invite_code, phone="13800000000", password="parent123", name="Mom"):
    return await client.post(
        "/api/family/join",
        json={"invite_code": invite_code, "phone": phone, "password": password, "name": name},
    )


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def set_cookies(response) -> list[str]:
    return response.headers.get_list("set-cookie")
