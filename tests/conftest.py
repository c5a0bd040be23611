"""Global test configuration and fixtures.

Fixture Scoping Strategy:
- session: test settings, password hasher (immutable)
- function: database, sessions, unit of work factory, app instance and
  clients (need fresh state)

Every database-backed fixture runs on its own in-memory SQLite database, so
tests never share rows.
"""

from collections.abc import AsyncGenerator, Generator
from functools import partial
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.infrastructure.config import Settings
from src.infrastructure.persistence.database import Database
from src.infrastructure.persistence.unit_of_work import UnitOfWork
from src.infrastructure.repositories.user_repository import UserRepository
from src.infrastructure.security.password_hasher import Argon2PasswordHasher
from src.presentation.api import create_app

# Import test factories for use in tests
from tests.factories import user_factory  # noqa: F401 - Imported for test use


# ============================================================================
# Session-Scoped Fixtures (Immutable Resources)
# ============================================================================


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings (session-scoped for performance).

    Uses an in-memory SQLite database and the cheapest argon2 parameters so
    that hashing does not dominate test time.

    Returns:
        Settings instance configured for testing
    """
    return Settings(
        app_env="testing",
        app_name="user-accounts-service-test",
        debug=True,
        log_level="WARNING",
        database_url="sqlite+aiosqlite:///:memory:",
        database_echo=False,
        password_hash_time_cost=1,
        password_hash_memory_cost=64,
        password_hash_parallelism=1,
    )


@pytest.fixture(scope="session")
def password_hasher(test_settings: Settings) -> Argon2PasswordHasher:
    """Cheap argon2 hasher shared by all tests."""
    return Argon2PasswordHasher.from_settings(test_settings)


# ============================================================================
# Function-Scoped Fixtures (Stateful Resources)
# ============================================================================


@pytest.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database]:
    """Fresh in-memory database with the users table created.

    Yields:
        Database: Connected database manager
    """
    db = Database(test_settings)
    await db.create_schema()
    yield db
    await db.close()


@pytest.fixture
def session_factory(database: Database) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return database.get_session_factory()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Plain session on the test database; the test decides when to commit."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    """User repository sharing the test session."""
    return UserRepository(db_session)


@pytest.fixture
def uow_factory(session_factory: async_sessionmaker[AsyncSession]) -> Any:
    """Unit of Work factory as the use cases receive it: ``uow_factory(read_only=...)``."""
    return partial(UnitOfWork, session_factory)


@pytest.fixture
def mock_uow() -> MagicMock:
    """Mock Unit of Work for use case unit tests (function-scoped).

    ``mock_uow.users`` is an AsyncMock repository; entering the unit returns
    the unit itself, like UnitOfWork does.

    Example:
        >>> async def test_get(mock_uow, mock_uow_factory):
        ...     mock_uow.users.find_active_by_id.return_value = user_factory(id=1)
        ...     user = await GetUserUseCase(mock_uow_factory).execute(1)
    """
    uow = MagicMock()
    uow.users = AsyncMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=None)
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def mock_uow_factory(mock_uow: MagicMock) -> MagicMock:
    """Factory returning ``mock_uow`` for every call, recording the arguments."""
    return MagicMock(return_value=mock_uow)


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    """Create FastAPI application on a fresh in-memory database (function-scoped).

    The schema is created by the application lifespan, which runs when the
    client fixture enters the TestClient context.

    Returns:
        FastAPI application instance
    """
    return create_app(test_settings)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient]:
    """Create test client for synchronous API testing (function-scoped).

    Example:
        >>> def test_create_user(client):
        ...     response = client.post("/api/users", json={...})
        ...     assert response.status_code == 201
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async test client for async API testing (function-scoped).

    ASGITransport does not run the lifespan, so the schema is created here.
    """
    await app.state.container.database().create_schema()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    await app.state.container.database().close()


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers (in addition to pyproject.toml)."""
    config.addinivalue_line("markers", "slow: Tests that take more than 1 second")

