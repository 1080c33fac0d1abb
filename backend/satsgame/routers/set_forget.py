from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from satsgame.config import settings
from satsgame.database import get_db
from satsgame.core.deps import get_current_user, get_price_oracle, require_admin
from satsgame.models.user import User
from satsgame.schemas.set_forget import CreateSetForgetRequest
from satsgame.services.pricing import CachedPriceOracle
from satsgame.services.set_forget import (
    SHARE_TOKEN_LENGTH, create_portfolio, list_portfolios, get_portfolio, get_shared_portfolio,
    delete_portfolio, portfolio_performance, shared_view,
)

router = APIRouter(prefix="/api/set-forget-portfolios", tags=["set-forget"])

@router.post("", status_code=201)
async def create_set_forget(
    body: CreateSetForgetRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    prices: CachedPriceOracle = Depends(get_price_oracle),
):
    portfolio = await create_portfolio(
        db, prices, user.id, body.name, body.initial_sats, body.allocations,
        base_asset=settings.BASE_ASSET,
    )
    return {
        "message": "Set & Forget portfolio created",
        "portfolio": await portfolio_performance(portfolio, prices, settings.BASE_ASSET),
    }

@router.get("")
async def list_set_forget(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    prices: CachedPriceOracle = Depends(get_price_oracle),
):
    portfolios = await list_portfolios(db, user.id)
    return {"portfolios": [await portfolio_performance(p, prices, settings.BASE_ASSET) for p in portfolios]}

@router.get("/public/{share_token}")
async def get_shared_set_forget(
    share_token: str,
    db: AsyncSession = Depends(get_db),
    prices: CachedPriceOracle = Depends(get_price_oracle),
):
    if len(share_token) != SHARE_TOKEN_LENGTH:
        raise HTTPException(400, "Invalid share token")
    portfolio = await get_shared_portfolio(db, share_token)
    if not portfolio:
        raise HTTPException(404, "Shared portfolio not found")
    return await shared_view(portfolio, prices, settings.BASE_ASSET)

@router.get("/{portfolio_id}")
async def get_set_forget(
    portfolio_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    prices: CachedPriceOracle = Depends(get_price_oracle),
):
    portfolio = await get_portfolio(db, portfolio_id)
    if not portfolio:
        raise HTTPException(404, "Portfolio not found")
    if portfolio.user_id != user.id:
        raise HTTPException(403, "Access denied")
    return await portfolio_performance(portfolio, prices, settings.BASE_ASSET)

@router.delete("/{portfolio_id}")
async def delete_set_forget(
    portfolio_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    portfolio = await get_portfolio(db, portfolio_id)
    if not portfolio:
        raise HTTPException(404, "Portfolio not found")
    name = portfolio.name
    await delete_portfolio(db, portfolio)
    return {"message": "Portfolio deleted", "deleted_portfolio": name}
