from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from satsgame.config import settings
from satsgame.database import get_db
from satsgame.core.deps import get_current_user, get_price_oracle
from satsgame.models.user import User
from satsgame.services.availability import get_availability
from satsgame.services.ledger import HoldingsStore, PurchaseLedger, utcnow
from satsgame.services.portfolio import portfolio_summary, asset_detail
from satsgame.services.pricing import CachedPriceOracle

router = APIRouter(prefix="/api/portfolio", tags=["portfolio"])

@router.get("")
async def get_portfolio(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    prices: CachedPriceOracle = Depends(get_price_oracle),
):
    return await portfolio_summary(db, prices, user.id, base_asset=settings.BASE_ASSET)

@router.get("/asset/{symbol}")
async def get_asset_detail(symbol: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await asset_detail(db, user.id, symbol.upper(), base_asset=settings.BASE_ASSET)

@router.get("/availability/{symbol}")
async def get_asset_availability(symbol: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    availability = await get_availability(
        HoldingsStore(db), PurchaseLedger(db), user.id, symbol.upper(), utcnow(),
        base_asset=settings.BASE_ASSET,
    )
    return availability.to_dict()
