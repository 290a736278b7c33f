"""
Pytest configuration and shared fixtures.

This module provides:
- The anyio backend used by async tests
- An in-memory SQLite engine with all tables created
- Handles and repositories bound to that engine
"""

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from entity_repository.db import Base, ModelHandle, make_session_maker
from sample_models import TagRecord, UserMapper, UserRecord, UserRepository


@pytest.fixture
def anyio_backend():
    """
    Configure anyio backend for async tests.

    Returns:
        str: Backend name ("asyncio")
    """
    return "asyncio"


@pytest.fixture
async def engine():
    """
    Create an in-memory SQLite engine with every test table.

    Yields:
        AsyncEngine shared by all sessions of one test
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return make_session_maker(engine)


@pytest.fixture
def user_handle(session_maker):
    return ModelHandle(session_maker, UserRecord)


@pytest.fixture
def tag_handle(session_maker):
    return ModelHandle(session_maker, TagRecord)


@pytest.fixture
def user_repository(user_handle):
    return UserRepository(user_handle, UserMapper())
