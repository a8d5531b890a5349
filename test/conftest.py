"""
Pytest configuration and fixtures for portal tests
"""

import os
import sys
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

# Configure the application before anything imports the settings
TEST_DIR = Path(tempfile.mkdtemp(prefix="portal-test-"))
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DIR / 'portal_test.db'}"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["STORAGE_PATH"] = str(TEST_DIR / "storage")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from portal.database import Base, get_db  # noqa: E402
from portal.middleware.rate_limit import limiter, login_throttle  # noqa: E402
from portal.models.user import User  # noqa: E402
from portal.services.email_service import EmailService  # noqa: E402
from portal.two_factor import PyotpTwoFactorAuthentication, get_two_factor_authentication  # noqa: E402
from utils.mock_utils import create_user  # noqa: E402

# A fresh connection per checkout; each test runs on its own event loop
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

import portal.database as database_module  # noqa: E402
from main import app  # noqa: E402

# Replace the app's engine and session maker with test versions
database_module.engine = test_engine
database_module.AsyncSessionLocal = TestSessionLocal


async def override_get_db():
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture(scope="function")
async def setup_test_database():
    """Create a fresh schema for each test that needs the database."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
async def test_db(setup_test_database) -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Throttle counters are process-wide; start every test clean."""
    login_throttle.reset()
    limiter.reset()
    yield
    login_throttle.reset()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch) -> MagicMock:
    """Capture outgoing mail instead of talking to an SMTP server."""
    mock = MagicMock(return_value=True)
    monkeypatch.setattr(EmailService, "_send_email", mock)
    return mock


@pytest.fixture
def two_factor_provider() -> PyotpTwoFactorAuthentication:
    """A provider with its own replay memory, used by the app for this test."""
    provider = PyotpTwoFactorAuthentication()
    app.dependency_overrides[get_two_factor_authentication] = lambda: provider
    yield provider
    app.dependency_overrides.pop(get_two_factor_authentication, None)


@pytest.fixture
async def client(setup_test_database) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app and the test database."""
    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver.local") as ac:
        yield ac
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def test_user(test_db: AsyncSession) -> User:
    """A verified user without two-factor authentication"""
    return await create_user(test_db)


@pytest.fixture
async def unverified_user(test_db: AsyncSession) -> User:
    return await create_user(test_db, name="Unverified User", email="unverified@example.com", verified=False)


@pytest.fixture
async def two_factor_user(test_db: AsyncSession) -> User:
    """A verified user with confirmed two-factor authentication"""
    provider = PyotpTwoFactorAuthentication()
    return await create_user(
        test_db,
        name="Secure User",
        email="secure@example.com",
        two_factor_secret=provider.generate_secret_key(),
        two_factor_recovery_codes=[provider.generate_recovery_code() for _ in range(8)],
        two_factor_confirmed_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def session_factory(setup_test_database):
    """Session maker for code that opens its own sessions, like scheduled jobs."""
    return TestSessionLocal
