"""
Shared fixtures for the SSO user service tests.

Each test gets a fresh in-memory SQLite database. StaticPool keeps a single
connection so every session sees the same database.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from sso_service.config import Settings
from sso_service.main import create_app
from sso_service.users.schemas import UserCreate
from sso_service.users.service import UserService
from sso_service.users.store import SQLAlchemyUserStore

TEST_SECRET = "test-secret-key-with-at-least-32-bytes!"
TEST_PASSWORD = "TestPassword123"


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
        store_timeout_seconds=5.0,
    )


@pytest_asyncio.fixture
async def store(settings):
    """SQLAlchemy store on an in-memory SQLite database."""
    engine = create_async_engine(
        settings.database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    user_store = SQLAlchemyUserStore(session_factory, engine=engine, timeout=settings.store_timeout_seconds)
    await user_store.create_schema()
    yield user_store
    await user_store.close()


@pytest.fixture
def user_service(store, settings):
    return UserService(store, settings)


@pytest.fixture
def app(store, settings):
    return create_app(settings=settings, store=store)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="http://test", transport=transport) as ac:
        yield ac


@pytest.fixture
def make_user():
    """Factory for registration payloads."""
    def _make_user(email: str = "ada@example.com", **overrides) -> UserCreate:
        data = {
            "name": "Ada Lovelace",
            "email": email,
            "password": TEST_PASSWORD,
            "company": "Analytical Engines Ltd",
            "roles": ["admin"],
        }
        data.update(overrides)
        return UserCreate(**data)
    return _make_user
