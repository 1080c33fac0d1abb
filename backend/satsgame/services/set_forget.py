"""Set & Forget portfolios.

A user splits a hypothetical sats amount across assets at today's prices and
watches what it is worth in sats later. Nothing is debited from holdings and
no lots are created; the allocations only remember the amounts and prices at
creation. Each portfolio gets a random share token for a public read-only view.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from satsgame.models.set_forget import SetForgetPortfolio, SetForgetAllocation
from satsgame.services.errors import InvalidPortfolio, InvalidAmount, PriceUnavailable, PersistenceFailure
from satsgame.services.ledger import utcnow
from satsgame.services.pricing import PriceOracle
from satsgame.services.settlement import convert_amount
from satsgame.services.units import check_storable

logger = logging.getLogger(__name__)

SHARE_TOKEN_BYTES = 32
SHARE_TOKEN_LENGTH = SHARE_TOKEN_BYTES * 2
MAX_NAME_LENGTH = 255
PERCENT_TOLERANCE = Decimal("0.01")
HUNDRED = Decimal(100)


@dataclass(frozen=True)
class AllocationSpec:
    asset_symbol: str
    allocation_percentage: Decimal


def validate_allocations(allocations: Iterable) -> List[AllocationSpec]:
    """Normalise symbols and check that the percentages split 100% once per asset."""
    splits = []
    seen = set()
    total = Decimal(0)
    for allocation in allocations or []:
        symbol = (allocation.asset_symbol or "").strip().upper()
        if not symbol:
            raise InvalidPortfolio("Each allocation needs an asset_symbol")
        if symbol in seen:
            raise InvalidPortfolio(f"Duplicate asset: {symbol}")
        seen.add(symbol)

        pct = Decimal(str(allocation.allocation_percentage))
        if not pct.is_finite() or pct < 0 or pct > HUNDRED:
            raise InvalidPortfolio(
                f"Allocation percentage must be between 0 and 100, got {pct} for {symbol}"
            )
        pct = pct.quantize(PERCENT_TOLERANCE, rounding=ROUND_HALF_UP)
        total += pct
        splits.append(AllocationSpec(symbol, pct))

    if not splits:
        raise InvalidPortfolio("At least one allocation is required")
    if abs(total - HUNDRED) > PERCENT_TOLERANCE:
        raise InvalidPortfolio(f"Allocations must sum to 100%, got {total}%")
    return splits


async def _require_price(prices: PriceOracle, symbol: str) -> Decimal:
    price = await prices.get_price(symbol)
    if price is None:
        raise PriceUnavailable(f"Price not available for {symbol}", symbol=symbol)
    return price


async def create_portfolio(
    db: AsyncSession,
    prices: PriceOracle,
    user_id: int,
    name: str,
    initial_sats: int,
    allocations: Iterable,
    base_asset: str = "BTC",
    now: Optional[datetime] = None,
) -> SetForgetPortfolio:
    name = (name or "").strip()
    if not name or len(name) > MAX_NAME_LENGTH:
        raise InvalidPortfolio(f"Portfolio name must be between 1 and {MAX_NAME_LENGTH} characters")
    if isinstance(initial_sats, bool) or not isinstance(initial_sats, int) or initial_sats <= 0:
        raise InvalidAmount("Initial amount must be a positive whole number of sats")
    check_storable(initial_sats)
    splits = validate_allocations(allocations)

    btc_price = await _require_price(prices, base_asset)
    asset_prices = {
        split.asset_symbol: btc_price if split.asset_symbol == base_asset
        else await _require_price(prices, split.asset_symbol)
        for split in splits
    }

    portfolio = SetForgetPortfolio(
        user_id=user_id,
        name=name,
        initial_sats=initial_sats,
        share_token=secrets.token_hex(SHARE_TOKEN_BYTES),
        created_at=now or utcnow(),
    )
    for split in splits:
        btc_amount = int((split.allocation_percentage / HUNDRED * initial_sats).to_integral_value(ROUND_FLOOR))
        price = asset_prices[split.asset_symbol]
        if split.asset_symbol == base_asset:
            asset_amount = btc_amount
        else:
            asset_amount = convert_amount(btc_amount, btc_price, price, rounding=ROUND_FLOOR)
        portfolio.allocations.append(SetForgetAllocation(
            asset_symbol=split.asset_symbol,
            allocation_percentage=split.allocation_percentage,
            btc_amount=btc_amount,
            asset_amount=check_storable(asset_amount),
            purchase_price_usd=price,
            btc_price_usd=btc_price,
        ))

    db.add(portfolio)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceFailure(f"Portfolio could not be saved: {e}") from e
    logger.info("[set-forget] user %s created portfolio %s (%d sats over %d assets)",
                user_id, portfolio.id, initial_sats, len(splits))
    return portfolio


async def list_portfolios(db: AsyncSession, user_id: int) -> List[SetForgetPortfolio]:
    return list(await db.scalars(
        select(SetForgetPortfolio)
        .where(SetForgetPortfolio.user_id == user_id)
        .order_by(SetForgetPortfolio.created_at.desc(), SetForgetPortfolio.id.desc())
    ))


async def get_portfolio(db: AsyncSession, portfolio_id: int) -> Optional[SetForgetPortfolio]:
    return await db.get(SetForgetPortfolio, portfolio_id)


async def get_shared_portfolio(db: AsyncSession, share_token: str) -> Optional[SetForgetPortfolio]:
    return await db.scalar(
        select(SetForgetPortfolio)
        .where(SetForgetPortfolio.share_token == share_token)
        .options(selectinload(SetForgetPortfolio.user))
        .execution_options(populate_existing=True)
    )


async def delete_portfolio(db: AsyncSession, portfolio: SetForgetPortfolio) -> None:
    await db.delete(portfolio)
    await db.commit()
    logger.info("[set-forget] deleted portfolio %s of user %s", portfolio.id, portfolio.user_id)


def _percent(value: Decimal) -> float:
    return float(value.quantize(PERCENT_TOLERANCE, rounding=ROUND_HALF_UP))


async def portfolio_performance(
    portfolio: SetForgetPortfolio,
    prices: PriceOracle,
    base_asset: str = "BTC",
    now: Optional[datetime] = None,
) -> dict:
    """Current value in sats, overall and per allocation.

    Per-asset performance is measured against BTC: the asset's price in BTC
    now over its price in BTC at creation. BTC itself is always 0%.
    """
    now = now or utcnow()
    btc_price = await _require_price(prices, base_asset)

    rows = []
    current_total = 0
    allocations = sorted(portfolio.allocations, key=lambda a: (-a.allocation_percentage, a.id or 0))
    for allocation in allocations:
        symbol = allocation.asset_symbol
        price = btc_price if symbol == base_asset else await _require_price(prices, symbol)
        if symbol == base_asset:
            value = int(allocation.asset_amount)
            performance = Decimal(0)
        else:
            value = convert_amount(int(allocation.asset_amount), price, btc_price, rounding=ROUND_FLOOR)
            bought_in_btc = Decimal(allocation.purchase_price_usd) / Decimal(allocation.btc_price_usd)
            performance = ((price / btc_price) / bought_in_btc - 1) * HUNDRED
        current_total += value
        rows.append({
            "asset_symbol": symbol,
            "allocation_percentage": str(allocation.allocation_percentage),
            "initial_btc_amount": int(allocation.btc_amount),
            "asset_amount": int(allocation.asset_amount),
            "current_value_sats": value,
            "initial_price_usd": str(allocation.purchase_price_usd),
            "current_price_usd": str(price),
            "initial_btc_price_usd": str(allocation.btc_price_usd),
            "asset_performance_percent": _percent(performance),
        })

    initial = int(portfolio.initial_sats)
    return {
        "id": portfolio.id,
        "name": portfolio.name,
        "initial_sats": initial,
        "current_value_sats": current_total,
        "total_performance_percent": _percent((Decimal(current_total) / initial - 1) * HUNDRED),
        "created_at": portfolio.created_at.isoformat(),
        "days_tracked": max((now - portfolio.created_at).days, 0),
        "current_btc_price": str(btc_price),
        "share_token": portfolio.share_token,
        "allocations": rows,
    }


async def shared_view(portfolio: SetForgetPortfolio, prices: PriceOracle, base_asset: str = "BTC",
                      now: Optional[datetime] = None) -> dict:
    """Public view by share token; names the owner only if their profile is public."""
    view = await portfolio_performance(portfolio, prices, base_asset, now)
    owner = portfolio.user
    view["owner"] = owner.username if owner is not None and owner.is_public else None
    view["is_shared"] = True
    return view
