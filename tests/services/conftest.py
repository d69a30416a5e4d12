"""Service test fixtures — async DB, change feed, and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db dependency overridden to use test DB session
    - db_manager patched: the session gate opens its own DB session through it
    - feed_broker replaced with a fresh ChangeFeedBroker per test
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from smart_bookmark.config import get_settings
from smart_bookmark.db.base import Base
from smart_bookmark.infrastructure.change_feed import ChangeFeedBroker
from smart_bookmark.infrastructure.database import get_db, DatabaseSessionManager
from smart_bookmark.infrastructure.session_authority import SqlSessionAuthority
import smart_bookmark.infrastructure.change_feed as feed_module
import smart_bookmark.infrastructure.database as db_module
import smart_bookmark.models  # noqa: F401
from smart_bookmark.main import app


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def feed():
    return ChangeFeedBroker(queue_size=16)


@pytest.fixture
def authority(test_db):
    return SqlSessionAuthority(test_db, get_settings())


@pytest.fixture
async def client(test_engine, test_session_factory, feed):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    original_feed = feed_module.feed_broker
    feed_module.feed_broker = feed

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    feed_module.feed_broker = original_feed


@pytest.fixture
def sign_in(client, authority):
    """Run the code exchange for an email and install the cookie on the client.

    Returns the session token.
    """
    async def _sign_in(email: str = "ada@example.com", display_name: str | None = "Ada"):
        code = await authority.issue_code(email, display_name)
        res = await client.get(f"/auth/callback?code={code}")
        assert res.status_code == 303
        token = res.cookies[get_settings().session_cookie_name]
        client.cookies.clear()
        client.cookies.set(get_settings().session_cookie_name, token)
        return token
    return _sign_in
