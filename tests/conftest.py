"""Pytest configuration and fixtures for test suite."""

import asyncio
import fnmatch
import os
import sys
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio

# Set test environment BEFORE any other imports
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DB_DRIVER", "sqlite+aiosqlite")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-the-permission-service-suite")

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))


def _reset_db_modules():
    """Reset database module globals to ensure clean state."""
    import database.async_engine as module
    module._async_engine = None


@pytest.fixture(autouse=True)
def reset_database_globals():
    """Reset database module globals before and after each test."""
    _reset_db_modules()
    yield
    _reset_db_modules()


# =============================================================================
# CACHE
# =============================================================================

class FakeRedis:
    """
    In-memory stand-in for redis.asyncio.Redis.

    Covers the commands RedisClient uses. Set ``fail = True`` to make every
    command raise a connection error.
    """

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.fail = False

    def _check(self):
        if self.fail:
            from redis.exceptions import ConnectionError
            raise ConnectionError("Connection refused")

    async def ping(self):
        self._check()
        return True

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        self._check()
        deleted = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                self.ttls.pop(key, None)
                deleted += 1
        return deleted

    async def scan_iter(self, match=None):
        self._check()
        for key in list(self.store):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def aclose(self):
        pass


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis):
    """A RedisClient wired to the in-memory server."""
    from cache.redis_client import RedisClient
    from config.settings import RedisSettings

    client = RedisClient(RedisSettings())
    client._client = fake_redis
    client._connected = True
    return client


@pytest.fixture
def mock_redis_client():
    """Provide a mock Redis client for testing."""
    from unittest.mock import AsyncMock, MagicMock

    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=True)
    client.delete_pattern = AsyncMock(return_value=0)
    client.health_check = AsyncMock(return_value={"status": "healthy", "connected": True})
    client.close = AsyncMock()
    client.is_connected = True
    return client


# =============================================================================
# DATABASE
# =============================================================================

def _build_session_factory(db_path: Path):
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import NullPool

    from database.async_engine import enable_sqlite_foreign_keys, get_session_factory

    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)
    enable_sqlite_foreign_keys(engine)
    return engine, get_session_factory(engine)


async def create_school(session_factory, role_config=None, name="Springfield High"):
    """Insert a school and return its ID."""
    from database.repositories import SchoolRepository

    async with session_factory() as session:
        school = await SchoolRepository(session).create(name, role_config=role_config)
        await session.commit()
        return school.id


async def add_staff(session_factory, school_id, role, user_id=None):
    """Insert a staff membership and return the user ID."""
    from database.repositories import StaffRepository

    user_id = user_id or str(uuid4())
    async with session_factory() as session:
        await StaffRepository(session).add(user_id, school_id, role)
        await session.commit()
    return user_id


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """Session factory over a fresh SQLite database file."""
    from database.async_engine import init_database

    engine, factory = _build_session_factory(tmp_path / "permissions.db")
    await init_database(engine)
    yield factory
    await engine.dispose()


@pytest.fixture
def service(cache, session_factory):
    from rbac.service import PermissionService

    return PermissionService(cache, session_factory, cache_ttl=300)


@pytest.fixture
def school_factory(session_factory):
    """Create schools: ``await school_factory(role_config=None)``."""
    async def factory(role_config=None, name="Springfield High"):
        return await create_school(session_factory, role_config, name)
    return factory


@pytest.fixture
def staff_factory(session_factory):
    """Create staff: ``await staff_factory(school_id, "TEACHER")``."""
    async def factory(school_id, role, user_id=None):
        return await add_staff(session_factory, school_id, role, user_id)
    return factory


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def make_token():
    """Sign a bearer token the way the upstream auth service does."""
    import jwt
    from config.settings import get_settings

    def factory(user_id, school_id, secret=None, **claims):
        auth = get_settings().auth
        payload = {"sub": user_id, "schoolId": school_id, **claims}
        return jwt.encode(payload, secret or auth.secret, algorithm=auth.algorithm)

    return factory


@pytest.fixture
def auth_header(make_token):
    def factory(user_id, school_id, **kwargs):
        return {"Authorization": f"Bearer {make_token(user_id, school_id, **kwargs)}"}
    return factory


class AppEnvironment:
    """Synchronous helpers for HTTP tests (setup runs outside the app's loop)."""

    def __init__(self, db_path: Path, cache):
        self.engine, self.session_factory = _build_session_factory(db_path)
        self.cache = cache

        from database.async_engine import init_database
        asyncio.run(init_database(self.engine))

    def run(self, coro):
        return asyncio.run(coro)

    def create_school(self, role_config=None, name="Springfield High"):
        return self.run(create_school(self.session_factory, role_config, name))

    def add_staff(self, school_id, role, user_id=None):
        return self.run(add_staff(self.session_factory, school_id, role, user_id))

    def seed(self, service, school_id):
        from rbac.seed import bootstrap_school_roles
        return self.run(bootstrap_school_roles(service, school_id))


@pytest.fixture
def app_env(tmp_path, cache):
    return AppEnvironment(tmp_path / "permissions.db", cache)


@pytest.fixture
def app_service(app_env):
    from rbac.service import PermissionService

    return PermissionService(app_env.cache, app_env.session_factory, cache_ttl=300)


@pytest.fixture
def client(app_service):
    """TestClient over an app using the test database and in-memory cache."""
    from fastapi.testclient import TestClient

    from config.settings import Settings
    from web.app import create_app

    app = create_app(settings=Settings(), permission_service=app_service)
    return TestClient(app)
