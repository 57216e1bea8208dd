"""
Integration test fixtures: a throwaway SQLite database per test.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from harmony.database.connection import create_engine_for, create_session_factory, init_models
from harmony.database.kv import SqlKeyValueStore


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'memory.db'}"


@pytest.fixture
async def test_engine(database_url):
    """Create an engine on a fresh SQLite file with all tables in place."""
    engine = create_engine_for(database_url)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine):
    return create_session_factory(test_engine)


@pytest.fixture
def sql_backend(session_factory):
    return SqlKeyValueStore(session_factory)
