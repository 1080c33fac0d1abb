import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from redis.exceptions import ConnectionError as RedisConnectionError
from satsgame.models.asset import Asset
from satsgame.services.pricing import CachedPriceOracle, price_cache_key


@pytest.fixture
def redis():
    mock = AsyncMock()
    mock.get = AsyncMock(return_value=None)
    return mock


async def seed(db, **prices):
    db.add_all([Asset(symbol=s, current_price_usd=p) for s, p in prices.items()])
    await db.commit()


@pytest.mark.asyncio
async def test_cache_hit_skips_database(db, redis):
    redis.get = AsyncMock(return_value="145.80")
    oracle = CachedPriceOracle(db, redis, ttl=60)
    assert await oracle.get_price("AMZN") == Decimal("145.80")
    redis.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_cache_miss_reads_table_and_fills_cache(db, redis):
    await seed(db, AMZN=Decimal("145.80"))
    oracle = CachedPriceOracle(db, redis, ttl=30)
    assert await oracle.get_price("AMZN") == Decimal("145.80")
    redis.get.assert_awaited_with(price_cache_key("AMZN"))
    key, value = redis.set.await_args.args
    assert key == "market:AMZN:price"
    assert Decimal(value) == Decimal("145.80")
    assert redis.set.await_args.kwargs == {"ex": 30}


@pytest.mark.asyncio
async def test_unknown_or_unpriced_asset_is_none(db, redis):
    await seed(db, GOLD=None, OIL=Decimal("0"))
    oracle = CachedPriceOracle(db, redis)
    assert await oracle.get_price("TSLA") is None
    assert await oracle.get_price("GOLD") is None
    assert await oracle.get_price("OIL") is None
    redis.set.assert_not_awaited()


@pytest.mark.asyncio
async def test_redis_outage_falls_back_to_table(db, redis):
    await seed(db, BTC=Decimal("115000"))
    redis.get = AsyncMock(side_effect=RedisConnectionError("down"))
    redis.set = AsyncMock(side_effect=RedisConnectionError("down"))
    oracle = CachedPriceOracle(db, redis)
    assert await oracle.get_price("BTC") == Decimal("115000")


@pytest.mark.asyncio
async def test_malformed_cache_entry_is_ignored(db, redis):
    await seed(db, BTC=Decimal("115000"))
    redis.get = AsyncMock(return_value="n/a")
    oracle = CachedPriceOracle(db, redis)
    assert await oracle.get_price("BTC") == Decimal("115000")


@pytest.mark.asyncio
async def test_invalidate_deletes_key(db, redis):
    await CachedPriceOracle(db, redis).invalidate("AAPL")
    redis.delete.assert_awaited_once_with("market:AAPL:price")
