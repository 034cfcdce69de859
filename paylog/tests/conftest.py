"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from paylog.app.main import app
from paylog.app.db.session import get_db, Base
from paylog.app.core.redis_client import get_redis
from paylog.app.core.security import get_password_hash
from paylog.app.models.enums import UserRole
from paylog.app.models.user import User
import paylog.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# In-process Redis double for the token revocation list
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def setex(self, key, seconds, value):
        return await self.set(key, value, ex=seconds)

    async def delete(self, key):
        if self._closed:
            return 0
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    """Session for fixture data creation and direct assertions."""
    async with TestingSessionLocal() as session:
        yield session


async def _create_and_login(client, db_session, username, role):
    db_session.add(User(
        email=f"{username}@test.com",
        username=username,
        full_name=username.title(),
        hashed_password=get_password_hash("admin123"),
        role=role,
        is_active=True
    ))
    await db_session.commit()

    response = await client.post("/v1/auth/login", json={
        "username": username,
        "password": "admin123"
    })
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture
async def admin_token(client, db_session):
    """Create an ADMIN user and return its token."""
    return await _create_and_login(client, db_session, "admin", UserRole.ADMIN)


@pytest.fixture
async def super_admin_token(client, db_session):
    """Create a SUPER_ADMIN user and return its token."""
    return await _create_and_login(client, db_session, "superadmin", UserRole.SUPER_ADMIN)


@pytest.fixture
async def user_token(client):
    """Register a standard user and return (token, user_id)."""
    response = await client.post("/v1/auth/register", json={
        "email": "clerk@test.com",
        "username": "clerk",
        "password": "password123",
        "full_name": "Accounts Clerk"
    })
    assert response.status_code == 201
    return response.json()["access_token"], response.json()["user_id"]


@pytest.fixture
async def master_data(client, admin_token):
    """
    Approved vendor, entity, category and a 10% TDS invoice profile.

    Returns a dict of their IDs.
    """
    headers = {"Authorization": f"Bearer {admin_token}"}

    vendor = await client.post("/v1/master-data/vendors", json={"name": "Acme Corp"}, headers=headers)
    assert vendor.status_code == 201
    entity = await client.post("/v1/master-data/entities", json={"name": "PayLog India Pvt Ltd"}, headers=headers)
    assert entity.status_code == 201
    category = await client.post("/v1/master-data/categories", json={"name": "Rent"}, headers=headers)
    assert category.status_code == 201

    ids = {
        "vendor_id": vendor.json()["vendor"]["id"],
        "entity_id": entity.json()["id"],
        "category_id": category.json()["id"],
    }
    profile = await client.post("/v1/master-data/profiles", json={
        "name": "Office Rent",
        "tds_applicable": True,
        "tds_percentage": "10",
        **ids
    }, headers=headers)
    assert profile.status_code == 201

    ids["profile_id"] = profile.json()["id"]
    return ids
