"""Root conftest — shared test configuration and SQLite-backed fixtures."""

import os
import tempfile

import pytest

# Never touch a developer's database or blob directory from tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BLOB_ROOT", tempfile.mkdtemp(prefix="timeline-blobs-"))
os.environ.setdefault("LOG_FORMAT", "text")

from timeline.infrastructure.database import DatabaseSessionManager  # noqa: E402


@pytest.fixture
async def db():
    """Fresh in-memory SQLite database with every table created."""
    manager = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    await manager.create_tables()
    yield manager
    await manager.dispose()


@pytest.fixture
def blob_root(tmp_path):
    return tmp_path / "blobs"
