from datetime import datetime, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

import satsgame.models  # noqa: F401
from satsgame.database import Base, make_engine
from satsgame.services.accounts import open_account

T0 = datetime(2026, 1, 5, 12, 0, 0)


class FixedClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class StaticPrices:
    def __init__(self, **prices):
        self.prices = {k: Decimal(str(v)) for k, v in prices.items()}

    async def get_price(self, symbol):
        return self.prices.get(symbol)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user_id(db):
    user = await open_account(db, "satoshi", "satoshi@example.com", grant_sats=100_000_000)
    return user.id


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def prices():
    return StaticPrices(BTC="115000", AMZN="145.80", AAPL="230.50")


@pytest.fixture
def price_factory():
    return StaticPrices
