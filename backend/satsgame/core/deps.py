from datetime import timedelta
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from satsgame.database import get_db
from satsgame.models.user import User
from satsgame.core.security import decode_token
from satsgame.core.redis import get_redis
from satsgame.config import settings
from satsgame.services.pricing import CachedPriceOracle
from satsgame.services.settlement import SettlementService

bearer = HTTPBearer()

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> User:
    user_id = decode_token(credentials.credentials)
    if not user_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "User not found")
    return user

async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Admin only")
    return user

async def get_price_oracle(db: AsyncSession = Depends(get_db)) -> CachedPriceOracle:
    redis = await get_redis()
    return CachedPriceOracle(db, redis, ttl=settings.PRICE_CACHE_TTL_SECONDS)

async def get_settlement_service(
    db: AsyncSession = Depends(get_db),
    prices: CachedPriceOracle = Depends(get_price_oracle),
) -> SettlementService:
    return SettlementService(
        db,
        prices,
        base_asset=settings.BASE_ASSET,
        lock_duration=timedelta(hours=settings.LOCK_DURATION_HOURS),
        min_trade_sats=settings.MIN_TRADE_SATS,
    )
