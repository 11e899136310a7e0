"""
Hearth Butler Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (mocked DB, users, API client).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── mock_db_session: Mock AsyncSession whose flush() fills ORM defaults
    ├── user / other_user: Detached User rows
    ├── make_result:     Builder for mock SQLAlchemy Results
    ├── temp_storage:    Temporary directory for file operations
    ├── sample_image_bytes: Minimal JPEG bytes for upload tests
    └── test_client:     HTTPX AsyncClient with DB and auth overridden
"""

import os
import tempfile

# Override settings for testing BEFORE any hearth imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="hearth_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["PASSWORD_HASH_ITERATIONS"] = "10000"

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import inspect as sa_inspect

from hearth.models.user import User


def apply_defaults(obj) -> None:
    """Fills primary key and column defaults the way an INSERT would."""
    mapper = sa_inspect(type(obj), raiseerr=False)
    if mapper is None:
        return
    for attr in mapper.column_attrs:
        column = attr.columns[0]
        if getattr(obj, attr.key, None) is not None or column.default is None:
            continue
        default = column.default
        if default.is_callable:
            value = default.arg(None)
        elif default.is_scalar:
            value = default.arg
        else:
            continue
        setattr(obj, attr.key, value)


def build_result(value=None, values=None, scalar=None, rows=None):
    """
    A mock Result supporting the access patterns used by the services.

        value   → scalar_one_or_none(), scalars().first()
        values  → scalars().all()
        scalar  → scalar()
        rows    → all(), first()
    """
    result = MagicMock()
    values = list(values) if values is not None else ([value] if value is not None else [])
    result.scalar_one_or_none.return_value = value
    result.scalars.return_value.all.return_value = values
    result.scalars.return_value.first.return_value = values[0] if values else None
    result.scalar.return_value = scalar
    result.all.return_value = list(rows or [])
    result.first.return_value = rows[0] if rows else None
    return result


@pytest.fixture
def make_result():
    return build_result


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    add() records objects; flush() fills their ids, timestamps and column
    defaults so services can return them as if they had been inserted.
    Queue query results with:

        mock_db_session.execute.side_effect = [make_result(value=member), ...]
    """
    session = AsyncMock()
    session.added = []

    def add(obj):
        session.added.append(obj)

    async def flush():
        for obj in session.added:
            apply_defaults(obj)

    session.add = MagicMock(side_effect=add)
    session.flush = AsyncMock(side_effect=flush)
    session.execute = AsyncMock()
    session.get = AsyncMock(return_value=None)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    return session


def make_user(email: str = "alice@example.com", name: str = "Alice") -> User:
    user = User(
        id=uuid.uuid4(),
        email=email,
        name=name,
        password_hash="pbkdf2_sha256$10000$c2FsdA$ZGs",
        role="USER",
    )
    user.created_at = datetime.now(timezone.utc)
    user.deleted_at = None
    return user


@pytest.fixture
def user():
    return make_user()


@pytest.fixture
def other_user():
    return make_user("bob@example.com", "Bob")


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh temporary directory for each test (cleaned up by pytest)."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """
    Minimal JPEG bytes: SOI marker + JFIF header + EOI marker.
    Not a real photograph, but enough for extension and size checks.
    """
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest_asyncio.fixture
async def test_client(mock_db_session, user):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    get_db_session yields mock_db_session and get_current_user returns
    `user`, so route tests only need to patch the service they exercise.
    """
    from hearth.database import get_db_session
    from hearth.main import app
    from hearth.routes.deps import get_current_user

    async def override_db():
        yield mock_db_session

    async def override_user():
        return user

    app.dependency_overrides[get_db_session] = override_db
    app.dependency_overrides[get_current_user] = override_user
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def anonymous_client(mock_db_session):
    """Client without the auth override; only the database is mocked."""
    from hearth.database import get_db_session
    from hearth.main import app

    async def override_db():
        yield mock_db_session

    app.dependency_overrides[get_db_session] = override_db
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
