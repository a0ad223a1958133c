"""
Shared fixtures: in-memory SQLite ledger, fake Redis, ASGI client.
"""
import math
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("METRICS_ENABLED", "false")
os.environ.setdefault("LEDGER_SERVICE_TOKEN", "test-ledger-token")

import httpx
import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stockgate.api.deps import get_rate_guard
from stockgate.core.availability import Tracked, Untracked
from stockgate.core.rate_guard import CheckoutRateGuard
from stockgate.db.database import Base, get_db, get_ledger_sessions
from stockgate.main import app
from stockgate.models.catalog import CatalogItem


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the cooldown guard, with a manual clock."""

    def __init__(self):
        self.now = 0.0
        self._data: dict[str, tuple[str, float | None]] = {}

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def _live(self, key):
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self.now:
            del self._data[key]
            return None
        return entry

    async def set(self, key, value, ex=None, nx=False):
        if nx and self._live(key) is not None:
            return None
        self._data[key] = (value, self.now + ex if ex else None)
        return True

    async def ttl(self, key):
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return math.ceil(entry[1] - self.now)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    async def ping(self):
        return True


class DownRedis:
    """A Redis whose every call fails the way a dropped connection does."""

    def __init__(self, fail_on=("set", "ttl", "delete", "ping")):
        self.fail_on = set(fail_on)
        self.inner = FakeRedis()

    def __getattr__(self, name):
        if name in self.fail_on:
            async def _fail(*args, **kwargs):
                raise RedisConnectionError("Connection refused")
            return _fail
        return getattr(self.inner, name)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessions(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def down_redis():
    return DownRedis


@pytest.fixture
def make_item(sessions):
    """Insert a catalog item. ``stock=None`` means untracked."""

    async def _make(name, merchant_id="merchant-1", stock=None, threshold=0, available=True):
        item = CatalogItem(merchant_id=merchant_id, name=name, available=available)
        if stock is None:
            item.apply_state(Untracked(threshold=threshold))
        else:
            item.apply_state(Tracked(quantity=stock, threshold=threshold))
        async with sessions() as db:
            db.add(item)
            await db.commit()
        return item

    return _make


@pytest.fixture
def load_item(sessions):
    """Read an item back on a fresh session."""

    async def _load(item_id):
        async with sessions() as db:
            return await db.get(CatalogItem, item_id)

    return _load


@pytest_asyncio.fixture
async def client(sessions, fake_redis):
    async def _get_db():
        async with sessions() as db:
            yield db

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_ledger_sessions] = lambda: sessions
    app.dependency_overrides[get_rate_guard] = lambda: CheckoutRateGuard(fake_redis, 60)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()
