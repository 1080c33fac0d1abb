"""Trade settlement: convert between the base asset and one other asset.

A settlement validates the request, converts through USD prices, updates the
holdings, records a purchase lot when buying a non-base asset and appends a
trade, all inside the caller's database transaction. Either every write is
committed or none is.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from satsgame.models.trade import Trade
from satsgame.services.availability import compute_availability
from satsgame.services.errors import (
    SettlementError, InvalidAssetPair, InvalidAmount, PriceUnavailable,
    InsufficientBalance, AssetLocked, PersistenceFailure,
)
from satsgame.services.ledger import HoldingsStore, PurchaseLedger, TradeLog, utcnow
from satsgame.services.pricing import PriceOracle
from satsgame.services.units import (
    AmountUnit, SMALLEST_PER_WHOLE, normalize_amount, format_units, check_storable,
)

logger = logging.getLogger(__name__)

DEFAULT_LOCK_DURATION = timedelta(hours=24)
CONVERSION_PRECISION = 60


@dataclass
class SettlementResult:
    trade: Trade
    from_asset: str
    to_asset: str
    from_amount: int
    to_amount: int
    locked_until: Optional[datetime]

    def describe(self) -> str:
        return (
            f"swapped {format_units(self.from_amount)} {self.from_asset} "
            f"for {format_units(self.to_amount)} {self.to_asset}"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.trade.id,
            "from_asset": self.from_asset,
            "to_asset": self.to_asset,
            "from_amount": self.from_amount,
            "to_amount": self.to_amount,
            "btc_price_usd": str(self.trade.btc_price_usd),
            "asset_price_usd": str(self.trade.asset_price_usd),
            "locked_until": self.locked_until.isoformat() if self.locked_until else None,
            "created_at": self.trade.created_at.isoformat(),
            "message": self.describe(),
        }


def convert_amount(amount: int, from_price: Decimal, to_price: Decimal, rounding: str = ROUND_HALF_UP) -> int:
    """Smallest units of one asset to smallest units of another via USD."""
    # room for an int64 amount priced at 1e-8 against 1e7 without losing digits
    with localcontext() as ctx:
        ctx.prec = CONVERSION_PRECISION
        usd_value = Decimal(amount) / SMALLEST_PER_WHOLE * from_price
        converted = usd_value / to_price * SMALLEST_PER_WHOLE
        return int(converted.quantize(Decimal("1"), rounding=rounding))


class SettlementService:
    def __init__(
        self,
        db: AsyncSession,
        prices: PriceOracle,
        holdings: Optional[HoldingsStore] = None,
        purchases: Optional[PurchaseLedger] = None,
        trades: Optional[TradeLog] = None,
        base_asset: str = "BTC",
        lock_duration: timedelta = DEFAULT_LOCK_DURATION,
        min_trade_sats: int = 0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.prices = prices
        self.holdings = holdings or HoldingsStore(db)
        self.purchases = purchases or PurchaseLedger(db)
        self.trades = trades or TradeLog(db)
        self.base_asset = base_asset
        self.lock_duration = lock_duration
        self.min_trade_sats = min_trade_sats
        self.clock = clock

    async def execute(
        self,
        user_id: int,
        from_asset: str,
        to_asset: str,
        amount,
        unit=AmountUnit.sats,
    ) -> SettlementResult:
        from_asset = (from_asset or "").strip().upper()
        to_asset = (to_asset or "").strip().upper()
        try:
            result = await self._settle(user_id, from_asset, to_asset, amount, unit)
            await self.db.commit()
        except SettlementError as e:
            await self.db.rollback()
            logger.info("[settlement] user %s %s->%s rejected: %s", user_id, from_asset, to_asset, e.kind)
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("[settlement] user %s %s->%s failed in storage", user_id, from_asset, to_asset)
            raise PersistenceFailure(f"Trade could not be saved: {e}") from e
        except ValueError as e:
            # ledger store guards (negative holding) surface as ValueError
            await self.db.rollback()
            logger.error("[settlement] user %s %s->%s ledger guard: %s", user_id, from_asset, to_asset, e)
            raise PersistenceFailure(f"Trade could not be saved: {e}") from e
        except Exception:
            await self.db.rollback()
            raise

        logger.info("[settlement] user %s %s", user_id, result.describe())
        return result

    async def _settle(self, user_id, from_asset, to_asset, amount, unit) -> SettlementResult:
        self._check_pair(from_asset, to_asset)
        from_is_base = from_asset == self.base_asset
        qty = normalize_amount(amount, unit, from_is_base)
        if from_is_base and self.min_trade_sats and qty < self.min_trade_sats:
            raise InvalidAmount(
                f"Minimum trade amount is {self.min_trade_sats:,} sats, tried to trade {qty:,} sats"
            )

        base_price = await self._price(self.base_asset)
        from_price = base_price if from_is_base else await self._price(from_asset)
        to_price = base_price if to_asset == self.base_asset else await self._price(to_asset)

        now = self.clock()
        holding = await self.holdings.get_holding(user_id, from_asset, lock=True)
        held = int(holding.amount) if holding else 0
        if holding is None or held < qty:
            raise InsufficientBalance(
                f"Insufficient balance. You have {format_units(held)} {from_asset}, "
                f"but tried to sell {format_units(qty)} {from_asset}",
                held=held,
                requested=qty,
            )

        if not from_is_base:
            locked = await self.purchases.sum_locked(user_id, from_asset, now)
            availability = compute_availability(from_asset, held, locked, user_id=user_id)
            if qty > availability.available:
                unlock_at = await self.purchases.next_unlock(user_id, from_asset, now)
                raise AssetLocked(
                    f"Cannot sell locked assets. You tried to sell {format_units(qty)} {from_asset}. "
                    f"Currently locked: {format_units(locked)} {from_asset}. "
                    f"Available to sell: {format_units(availability.available)} {from_asset}."
                    + (f" Next unlock at {unlock_at.isoformat()} UTC." if unlock_at else ""),
                    available=availability.available,
                    locked=locked,
                    unlock_at=unlock_at,
                )

        try:
            to_amount = convert_amount(qty, from_price, to_price)
        except InvalidOperation:
            raise InvalidAmount(f"{format_units(qty)} {from_asset} cannot be converted to {to_asset}")
        if to_amount <= 0:
            raise InvalidAmount(
                f"{format_units(qty)} {from_asset} is worth less than one unit of {to_asset}"
            )
        check_storable(to_amount + (await self.holdings.get_amount(user_id, to_asset) or 0))

        await self.holdings.adjust_holding(user_id, from_asset, -qty)

        locked_until = None
        if to_asset == self.base_asset:
            await self.holdings.adjust_holding(user_id, to_asset, to_amount)
        else:
            locked_until = now + self.lock_duration
            await self.purchases.create_lot(
                user_id, to_asset, to_amount, btc_spent=qty,
                unlock_at=locked_until, created_at=now,
                purchase_price_usd=to_price, btc_price_usd=base_price,
            )
            await self.holdings.adjust_holding(user_id, to_asset, to_amount)

        trade = await self.trades.append_trade(
            user_id, from_asset, to_asset, qty, to_amount,
            btc_price_usd=base_price,
            asset_price_usd=from_price if to_asset == self.base_asset else to_price,
            created_at=now,
        )
        return SettlementResult(
            trade=trade,
            from_asset=from_asset,
            to_asset=to_asset,
            from_amount=qty,
            to_amount=to_amount,
            locked_until=locked_until,
        )

    def _check_pair(self, from_asset: str, to_asset: str) -> None:
        if not from_asset or not to_asset:
            raise InvalidAssetPair("Both from_asset and to_asset are required")
        if from_asset == to_asset:
            raise InvalidAssetPair(f"Cannot trade {from_asset} for itself")
        if self.base_asset not in (from_asset, to_asset):
            raise InvalidAssetPair(
                f"One side of the trade must be {self.base_asset} ({from_asset} -> {to_asset} given)"
            )

    async def _price(self, symbol: str) -> Decimal:
        price = await self.prices.get_price(symbol)
        if price is None:
            raise PriceUnavailable(f"Price not available for {symbol}", symbol=symbol)
        return price
