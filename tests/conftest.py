"""Test configuration and fixtures for authstate tests."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from authstate.db import Database, reset_database


@pytest_asyncio.fixture(scope="function")
async def db(tmp_path) -> AsyncGenerator[Database]:
    """Initialized Database on a fresh SQLite file."""
    database = Database(str(tmp_path / "auth.db"))
    await database.init()
    yield database
    await database.close()


@pytest_asyncio.fixture(scope="function")
async def db_session(db) -> AsyncGenerator[AsyncSession]:
    """Bare session; tests commit explicitly when they need to."""
    async with db.session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def shared_db_reset() -> AsyncGenerator[None]:
    """Forget the process-wide shared Database after the test."""
    await reset_database()
    yield
    await reset_database()


@pytest.fixture
def app_state_key_payload() -> dict:
    return {
        "keyData": b"\x00\x01\x02secret-key-bytes\xff",
        "fingerprint": {"rawId": 7, "currentIndex": 2, "deviceIndexes": [0, 1]},
        "timestamp": 1700000000,
    }
