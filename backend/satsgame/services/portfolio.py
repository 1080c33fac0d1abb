"""Read-only portfolio views: valuation in sats and per-asset lot listings."""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from satsgame.services.availability import compute_availability
from satsgame.services.ledger import HoldingsStore, PurchaseLedger, TradeLog, utcnow
from satsgame.services.pricing import PriceOracle
from satsgame.services.settlement import convert_amount


def lot_to_dict(lot, now: datetime) -> dict:
    return {
        "id": lot.id,
        "asset": lot.asset_symbol,
        "amount": int(lot.amount),
        "btc_spent": int(lot.btc_spent),
        "purchase_price_usd": str(lot.purchase_price_usd) if lot.purchase_price_usd is not None else None,
        "btc_price_usd": str(lot.btc_price_usd) if lot.btc_price_usd is not None else None,
        "locked_until": lot.locked_until.isoformat(),
        "is_locked": lot.locked_until > now,
        "created_at": lot.created_at.isoformat(),
    }


def trade_to_dict(t) -> dict:
    return {
        "id": t.id,
        "from_asset": t.from_asset,
        "to_asset": t.to_asset,
        "from_amount": int(t.from_amount),
        "to_amount": int(t.to_amount),
        "btc_price_usd": str(t.btc_price_usd) if t.btc_price_usd is not None else None,
        "asset_price_usd": str(t.asset_price_usd) if t.asset_price_usd is not None else None,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


async def list_lots(db: AsyncSession, user_id: int, asset: str, now: Optional[datetime] = None) -> list:
    """Lots for one asset, oldest first, each with its own lock state."""
    now = now or utcnow()
    lots = await PurchaseLedger(db).list_lots(user_id, asset)
    return [lot_to_dict(lot, now) for lot in lots]


async def asset_detail(db: AsyncSession, user_id: int, asset: str, base_asset: str = "BTC",
                       now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    sales = await TradeLog(db).list_sales(user_id, asset, base_asset)
    return {
        "asset": asset,
        "purchases": await list_lots(db, user_id, asset, now),
        "sales": [trade_to_dict(t) for t in sales],
    }


def _remaining_cost_basis(spent: int, purchased: int, holding: int) -> int:
    if purchased <= 0:
        return 0
    ratio = Decimal(holding) / Decimal(purchased)
    return int((Decimal(spent) * ratio).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def portfolio_summary(db: AsyncSession, prices: PriceOracle, user_id: int,
                            base_asset: str = "BTC", now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    holdings = await HoldingsStore(db).list_holdings(user_id)
    lots = await PurchaseLedger(db).list_lots(user_id)

    spent = defaultdict(int)
    purchased = defaultdict(int)
    locked = defaultdict(int)
    counts = defaultdict(int)
    last_purchase = {}
    next_unlock = {}
    for lot in lots:
        sym = lot.asset_symbol
        spent[sym] += int(lot.btc_spent)
        purchased[sym] += int(lot.amount)
        counts[sym] += 1
        last_purchase[sym] = lot.created_at
        if lot.locked_until > now:
            locked[sym] += int(lot.amount)
            if sym not in next_unlock or lot.locked_until < next_unlock[sym]:
                next_unlock[sym] = lot.locked_until

    btc_price = await prices.get_price(base_asset)
    total_value = 0
    total_cost = 0
    rows = []
    for h in holdings:
        sym = h.asset_symbol
        amount = int(h.amount)
        price = btc_price if sym == base_asset else await prices.get_price(sym)
        if sym == base_asset:
            value = amount
            cost = amount
        else:
            value = convert_amount(amount, price, btc_price) if price and btc_price else 0
            cost = _remaining_cost_basis(spent[sym], purchased[sym], amount)
        total_value += value
        total_cost += cost
        availability = compute_availability(sym, amount, locked[sym], next_unlock.get(sym), user_id=user_id)
        rows.append({
            "asset": sym,
            "amount": amount,
            "current_price_usd": str(price) if price is not None else None,
            "current_value_sats": value,
            "cost_basis_sats": cost,
            "purchase_count": counts[sym],
            "last_purchase_date": last_purchase[sym].isoformat() if sym in last_purchase else None,
            "locked_amount": availability.locked,
            "available_amount": availability.available,
            "lock_status": availability.lock_status,
            "next_unlock_at": availability.next_unlock_at.isoformat() if availability.next_unlock_at else None,
        })

    return {
        "holdings": rows,
        "total_value_sats": total_value,
        "total_cost_sats": total_cost,
        "btc_price": str(btc_price) if btc_price is not None else None,
    }
