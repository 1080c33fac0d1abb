import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Protocol

from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession

from satsgame.models.asset import Asset

logger = logging.getLogger(__name__)


def price_cache_key(symbol: str) -> str:
    return f"market:{symbol}:price"


class PriceOracle(Protocol):
    async def get_price(self, symbol: str) -> Optional[Decimal]:
        """Return the current USD price of ``symbol``, or None when unknown."""
        ...


class CachedPriceOracle:
    """Asset-table prices fronted by a short-lived Redis cache.

    A Redis outage degrades to database reads; it never fails a lookup.
    """

    def __init__(self, db: AsyncSession, redis, ttl: int = 60):
        self.db = db
        self.redis = redis
        self.ttl = ttl

    async def get_price(self, symbol: str) -> Optional[Decimal]:
        key = price_cache_key(symbol)
        try:
            cached = await self.redis.get(key)
        except RedisError as e:
            logger.warning("[prices] cache read failed for %s: %s", symbol, e)
            cached = None
        if cached:
            try:
                return _positive(Decimal(cached))
            except InvalidOperation:
                logger.warning("[prices] ignoring malformed cached price %r for %s", cached, symbol)

        asset = await self.db.get(Asset, symbol)
        if asset is None or asset.current_price_usd is None:
            return None
        price = _positive(Decimal(str(asset.current_price_usd)))
        if price is not None:
            try:
                await self.redis.set(key, str(price), ex=self.ttl)
            except RedisError as e:
                logger.warning("[prices] cache write failed for %s: %s", symbol, e)
        return price

    async def invalidate(self, symbol: str) -> None:
        try:
            await self.redis.delete(price_cache_key(symbol))
        except RedisError as e:
            logger.warning("[prices] cache invalidation failed for %s: %s", symbol, e)


def _positive(price: Decimal) -> Optional[Decimal]:
    # zero or negative prices are treated as missing
    if not price.is_finite() or price <= 0:
        return None
    return price
