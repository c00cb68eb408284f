"""
Integration Test Fixtures

Provides fixtures for integration tests that require a running PostgreSQL.
Tables are recreated at session start and truncated around each test.

IMPORTANT: All integration tests use the TEST database only (via POSTGRES_TEST_* env vars).
A safety check fixture (verify_test_database) runs at session start to fail fast if
production credentials are detected. When the database is unreachable the
whole integration suite is skipped.
"""

import os
from pathlib import Path
from typing import AsyncGenerator
from urllib.parse import quote_plus

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fluentpath.db.base import Base

# Load .env file FIRST, before reading any environment variables
_project_root = Path(__file__).parent.parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

pytestmark = pytest.mark.integration

# Children before parents, so TRUNCATE order respects foreign keys
TABLES = [
    "xp_transactions",
    "streaks",
    "review_queue_entries",
    "exercise_attempts",
    "progress_snapshots",
    "course_enrollments",
    "exercises",
    "lessons",
    "modules",
    "courses",
]


# =============================================================================
# Safety Check - Runs before any integration tests
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def verify_test_database():
    """
    Safety check: Verify we're using test database credentials.

    Set ALLOW_PROD_DB_TESTS=1 to skip this check (for local development only).
    """
    if os.environ.get("ALLOW_PROD_DB_TESTS", "").lower() in ("1", "true", "yes"):
        return

    config = get_test_db_config()
    production_indicators = ["fluentpath", "prod", "production"]
    for indicator in production_indicators:
        assert indicator not in config["db"].lower(), (
            f"SAFETY CHECK FAILED: Database name '{config['db']}' looks like production! "
            "Set POSTGRES_TEST_DB environment variable or ALLOW_PROD_DB_TESTS=1."
        )


# =============================================================================
# Database Configuration
# =============================================================================


def get_test_db_config() -> dict:
    """
    Get test database configuration from environment variables.

    Priority: POSTGRES_TEST_* > POSTGRES_* > defaults
    """
    return {
        "host": os.environ.get("POSTGRES_HOST", "localhost"),
        "port": os.environ.get("POSTGRES_PORT", "5432"),
        "user": os.environ.get(
            "POSTGRES_TEST_USER", os.environ.get("POSTGRES_USER", "testuser")
        ),
        "password": os.environ.get(
            "POSTGRES_TEST_PASSWORD", os.environ.get("POSTGRES_PASSWORD", "testpass")
        ),
        "db": os.environ.get("POSTGRES_TEST_DB", os.environ.get("POSTGRES_DB", "testdb")),
    }


def get_test_db_url(async_driver: bool = True) -> str:
    """Build database URL from test config environment variables."""
    config = get_test_db_config()
    encoded_password = quote_plus(config["password"])
    driver = "postgresql+asyncpg" if async_driver else "postgresql+psycopg2"
    return f"{driver}://{config['user']}:{encoded_password}@{config['host']}:{config['port']}/{config['db']}"


@pytest.fixture(scope="session", autouse=True)
def setup_test_database(verify_test_database):
    """
    Recreate all tables before any tests run.

    Uses synchronous SQLAlchemy to avoid event loop issues.
    """
    sync_engine = create_engine(get_test_db_url(async_driver=False))
    try:
        with sync_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except OperationalError as e:
        sync_engine.dispose()
        pytest.skip(f"PostgreSQL test database unavailable: {e.orig}")

    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)

    yield

    sync_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session over freshly truncated tables.

    Creates a fresh engine per test to avoid event loop issues.
    WARNING: This truncates tables! Only use for integration tests.
    """
    test_engine = create_async_engine(get_test_db_url(async_driver=True), echo=False)
    test_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with test_session_maker() as session:
        await session.execute(text(f"TRUNCATE TABLE {', '.join(TABLES)} CASCADE"))
        await session.commit()

        yield session

        await session.rollback()
        await session.execute(text(f"TRUNCATE TABLE {', '.join(TABLES)} CASCADE"))
        await session.commit()

    await test_engine.dispose()
