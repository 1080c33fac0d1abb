import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from satsgame.config import settings
from satsgame.database import get_db
from satsgame.core.deps import require_admin, get_price_oracle
from satsgame.core.security import create_access_token
from satsgame.models.asset import Asset
from satsgame.models.user import User
from satsgame.schemas.admin import OpenAccountRequest, SetPriceRequest
from satsgame.services.accounts import open_account, AccountExists
from satsgame.services.pricing import CachedPriceOracle
from satsgame.services.reconciliation import audit_ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/users", status_code=201)
async def create_user(
    body: OpenAccountRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    try:
        user = await open_account(
            db, body.username, body.email,
            grant_sats=settings.INITIAL_GRANT_SATS,
            base_asset=settings.BASE_ASSET,
            is_admin=body.is_admin,
        )
    except AccountExists as e:
        raise HTTPException(409, str(e))
    return {
        "id": user.id,
        "username": user.username,
        "initial_grant_sats": settings.INITIAL_GRANT_SATS,
        "access_token": create_access_token(user.id),
    }


@router.put("/assets/{symbol}/price")
async def set_asset_price(
    symbol: str,
    body: SetPriceRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    prices: CachedPriceOracle = Depends(get_price_oracle),
):
    symbol = symbol.upper()
    asset = await db.get(Asset, symbol)
    if asset:
        asset.current_price_usd = body.price_usd
    else:
        db.add(Asset(symbol=symbol, current_price_usd=body.price_usd))
    await db.commit()
    await prices.invalidate(symbol)
    logger.info("[admin] %s set %s price to %s USD", admin.username, symbol, body.price_usd)
    return {"symbol": symbol, "current_price_usd": str(body.price_usd)}


@router.get("/ledger/audit")
async def run_ledger_audit(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    report = await audit_ledger(db, settings.INITIAL_GRANT_SATS, settings.BASE_ASSET)
    return report.to_dict()
