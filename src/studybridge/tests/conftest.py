"""
Core pytest configuration for the entire test suite.

Only the database setup and logging installation shared by every test area live here.
Domain fixtures are in tests/test_fixtures/ and imported at the bottom of this module so
they are available everywhere.
"""

# -------------------------------
# Standard library imports
# -------------------------------
import logging
from typing import AsyncGenerator

# -------------------------------
# Early logging tuning
# -------------------------------
# Keep this block above the studybridge imports so model registration stays quiet.
NOISY_LOGGERS = (
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.engine.Engine",
    "aiosqlite",
    "asyncio",
    "httpx",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from studybridge.config import get_settings
from studybridge.core.logging.builder import setup_logging
from studybridge.database.base import Base
from studybridge import models  # noqa: F401 - registers every model with Base.metadata

settings = get_settings()


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """
    Install the application's dictConfig once for the whole session.

    pytest's caplog handler is attached per test, after this runs, so caplog.records
    keeps working.
    """
    setup_logging(settings)
    yield


# ------------------------------------------------------------------------------------------------
# DATABASE FIXTURES
# ------------------------------------------------------------------------------------------------


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture()
async def async_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    A fresh SQLite database file per test.

    Unique constraints are what these tests exercise, so every test gets its own file
    instead of sharing a database through savepoints that the converter's rollback would
    unwind.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture()
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    maker = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session
        await session.rollback()


# Account fixtures
from .test_fixtures.account_fixtures import (  # noqa: E402,F401
    account_repository,
    make_account,
    persisted_account,
)
