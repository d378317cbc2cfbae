"""
Shared test configuration and fixtures.

Stores are real SQLite databases: in memory for most tests, or a file
under a temporary directory when persistence is under test.
"""

import tempfile
from pathlib import Path

import pytest

from ran_history.store import SQLiteHistoryStore

from factories import make_command

RAN_ENV_VARS = (
    "RAN_DB_PATH",
    "RAN_PROJECTS_DIR",
    "RAN_DEFAULT_LIMIT",
    "RAN_PENDING_RESULT_WINDOW",
    "RAN_ONBOARD_TARGET",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's RAN_* settings out of tests."""
    for var in RAN_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
async def store():
    """In-memory history store."""
    store = await SQLiteHistoryStore.open(":memory:")
    yield store
    await store.close()


@pytest.fixture
async def docker_store(store):
    """Store holding the three commands used by the search tests."""
    await store.insert_command(
        make_command(
            "tool_1",
            "docker build -t myapp .",
            description="Build docker image",
            cwd="/projects/myapp",
            timestamp="2024-01-01T00:00:00Z",
            session_id="session_1",
        )
    )
    await store.insert_command(
        make_command(
            "tool_2",
            "npm test",
            description="Run tests",
            cwd="/projects/myapp",
            timestamp="2024-01-02T00:00:00Z",
            session_id="session_1",
        )
    )
    await store.insert_command(
        make_command(
            "tool_3",
            "docker push myapp",
            description="Push to registry",
            cwd="/projects/other",
            timestamp="2024-01-03T00:00:00Z",
            session_id="session_1",
        )
    )
    return store
