"""API test fixtures — services wired to in-memory SQLite + FastAPI test client.

Invariants:
    - db and blob_root come from the root conftest (fresh per test)
    - get_services overridden with services wired to the test database
    - db_manager patched so the readiness probe sees the test database

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
    - Lifespan not run (ASGITransport): fixtures do the wiring explicitly
"""

import pytest
from httpx import ASGITransport, AsyncClient

import timeline.infrastructure.database as db_module
from timeline.api.dependencies import build_services, get_services
from timeline.config import Settings
from timeline.main import app


@pytest.fixture
async def services(db, blob_root):
    settings = Settings(blob_root=str(blob_root), blob_base_url="/blobs")
    wired = build_services(db, settings)
    yield wired
    await wired.close()


@pytest.fixture
async def client(db, services, monkeypatch):
    """FastAPI test client with services overridden."""
    monkeypatch.setattr(db_module, "db_manager", db)
    app.dependency_overrides[get_services] = lambda: services

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
