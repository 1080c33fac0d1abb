from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from satsgame.database import get_db
from satsgame.models.asset import Asset
from satsgame.services.catalog import describe_asset, categories

router = APIRouter(prefix="/api/assets", tags=["assets"])

def _asset_row(asset: Asset) -> dict:
    return {
        **describe_asset(asset.symbol),
        "current_price_usd": str(asset.current_price_usd) if asset.current_price_usd is not None else None,
        "last_updated": asset.last_updated.isoformat() if asset.last_updated else None,
    }

@router.get("")
async def list_assets(db: AsyncSession = Depends(get_db)):
    assets = await db.scalars(select(Asset).order_by(Asset.symbol))
    return {"assets": [_asset_row(a) for a in assets], "categories": categories()}

@router.get("/{symbol}")
async def get_asset(symbol: str, db: AsyncSession = Depends(get_db)):
    asset = await db.get(Asset, symbol.upper())
    if not asset:
        raise HTTPException(404, "Asset not found")
    return _asset_row(asset)
