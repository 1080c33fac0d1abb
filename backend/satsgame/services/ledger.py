"""SQLAlchemy-backed stores for holdings, purchase lots and the trade log.

All three share the caller's AsyncSession; none of them commits. The
transaction boundary belongs to the caller (see SettlementService).
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from satsgame.models.holding import Holding
from satsgame.models.purchase import Purchase
from satsgame.models.trade import Trade


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how the ledger columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class HoldingsStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_holding(self, user_id: int, asset: str, lock: bool = False) -> Optional[Holding]:
        stmt = select(Holding).where(Holding.user_id == user_id, Holding.asset_symbol == asset)
        if lock:
            stmt = stmt.with_for_update()
        return await self.db.scalar(stmt)

    async def get_amount(self, user_id: int, asset: str) -> Optional[int]:
        holding = await self.get_holding(user_id, asset)
        return int(holding.amount) if holding else None

    async def list_holdings(self, user_id: int) -> List[Holding]:
        return list(await self.db.scalars(
            select(Holding).where(Holding.user_id == user_id).order_by(Holding.asset_symbol)
        ))

    async def adjust_holding(self, user_id: int, asset: str, delta: int) -> Holding:
        """Add ``delta`` to a holding, creating the row for a positive delta."""
        holding = await self.get_holding(user_id, asset, lock=True)
        if holding is None:
            if delta < 0:
                raise ValueError(f"No {asset} holding for user {user_id} to debit {-delta}")
            holding = Holding(user_id=user_id, asset_symbol=asset, amount=delta)
            self.db.add(holding)
        else:
            new_amount = int(holding.amount) + delta
            if new_amount < 0:
                raise ValueError(
                    f"{asset} holding for user {user_id} would go negative ({holding.amount} + {delta})"
                )
            holding.amount = new_amount
        await self.db.flush()
        return holding


class PurchaseLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_lot(
        self,
        user_id: int,
        asset: str,
        amount: int,
        btc_spent: int,
        unlock_at: datetime,
        created_at: datetime,
        purchase_price_usd: Optional[Decimal] = None,
        btc_price_usd: Optional[Decimal] = None,
    ) -> Purchase:
        lot = Purchase(
            user_id=user_id,
            asset_symbol=asset,
            amount=amount,
            btc_spent=btc_spent,
            purchase_price_usd=purchase_price_usd,
            btc_price_usd=btc_price_usd,
            locked_until=unlock_at,
            created_at=created_at,
        )
        self.db.add(lot)
        await self.db.flush()
        return lot

    async def sum_locked(self, user_id: int, asset: str, now: datetime) -> int:
        total = await self.db.scalar(
            select(func.coalesce(func.sum(Purchase.amount), 0)).where(
                Purchase.user_id == user_id,
                Purchase.asset_symbol == asset,
                Purchase.locked_until > now,
            )
        )
        return int(total or 0)

    async def next_unlock(self, user_id: int, asset: str, now: datetime) -> Optional[datetime]:
        return await self.db.scalar(
            select(func.min(Purchase.locked_until)).where(
                Purchase.user_id == user_id,
                Purchase.asset_symbol == asset,
                Purchase.locked_until > now,
            )
        )

    async def list_lots(self, user_id: int, asset: Optional[str] = None) -> List[Purchase]:
        stmt = select(Purchase).where(Purchase.user_id == user_id)
        if asset is not None:
            stmt = stmt.where(Purchase.asset_symbol == asset)
        return list(await self.db.scalars(stmt.order_by(Purchase.created_at, Purchase.id)))


class TradeLog:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def append_trade(
        self,
        user_id: int,
        from_asset: str,
        to_asset: str,
        from_amount: int,
        to_amount: int,
        btc_price_usd: Decimal,
        asset_price_usd: Decimal,
        created_at: datetime,
    ) -> Trade:
        trade = Trade(
            user_id=user_id,
            from_asset=from_asset,
            to_asset=to_asset,
            from_amount=from_amount,
            to_amount=to_amount,
            btc_price_usd=btc_price_usd,
            asset_price_usd=asset_price_usd,
            created_at=created_at,
        )
        self.db.add(trade)
        await self.db.flush()
        return trade

    async def list_trades(self, user_id: int, limit: Optional[int] = 50) -> List[Trade]:
        stmt = select(Trade).where(Trade.user_id == user_id).order_by(
            Trade.created_at.desc(), Trade.id.desc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(await self.db.scalars(stmt))

    async def list_sales(self, user_id: int, asset: str, base_asset: str) -> List[Trade]:
        return list(await self.db.scalars(
            select(Trade).where(
                Trade.user_id == user_id,
                Trade.from_asset == asset,
                Trade.to_asset == base_asset,
            ).order_by(Trade.created_at.desc(), Trade.id.desc())
        ))
