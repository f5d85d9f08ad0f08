"""Pytest configuration and fixtures for API tests."""
import os
import tempfile

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="portal-img-")
os.environ["ADMIN_USERNAME"] = "admin"
os.environ["ADMIN_PASSWORD"] = "testpass123"

from datetime import datetime
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from web.api.deps import get_http_client, get_now
from web.api.main import create_app

PORTAL_TZ = ZoneInfo("Asia/Makassar")


@pytest.fixture
async def app(tmp_path):
    """Fresh app on its own in-memory database (ASGI lifespan doesn't run with httpx)."""
    app = create_app("sqlite+aiosqlite:///:memory:", upload_dir=tmp_path / "img")
    await app.state.db.init()
    yield app
    app.dependency_overrides.clear()
    await app.state.db.dispose()


@pytest.fixture
async def client(app):
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def set_now(app):
    """Pin the portal clock: set_now(2025, 1, 15, 12, 0) in the portal's zone."""

    def _set(*parts):
        moment = datetime(*parts, tzinfo=PORTAL_TZ)
        app.dependency_overrides[get_now] = lambda: moment
        return moment

    return _set


@pytest.fixture
def provider(app):
    """Fake identity provider. Register responders in ``routes`` keyed by (method, url without query)."""
    calls = []
    routes = {}

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        responder = routes.get(key)
        if responder is None:
            return httpx.Response(404, json={"error": "unexpected call"})
        return responder(request)

    async def _client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as c:
            yield c

    app.dependency_overrides[get_http_client] = _client
    return SimpleNamespace(calls=calls, routes=routes)
