import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    asset: str
    holding: int
    locked: int
    available: int
    next_unlock_at: Optional[datetime] = None

    @property
    def lock_status(self) -> str:
        if self.locked <= 0:
            return "unlocked"
        if self.locked >= self.holding:
            return "locked"
        return "partial"

    def to_dict(self) -> dict:
        return {
            "asset": self.asset,
            "holding": self.holding,
            "locked": self.locked,
            "available": self.available,
            "lock_status": self.lock_status,
            "next_unlock_at": self.next_unlock_at.isoformat() if self.next_unlock_at else None,
        }


def compute_availability(
    asset: str,
    holding: int,
    locked: int,
    next_unlock_at: Optional[datetime] = None,
    user_id: Optional[int] = None,
) -> Availability:
    """available = holding - locked, clamped at zero.

    Locked lots exceeding the holding mean the ledger was edited outside of
    settlement; that is logged as an integrity warning and reported as
    nothing available.
    """
    available = holding - locked
    if available < 0:
        logger.warning(
            "[integrity] user %s %s: locked %d exceeds holding %d, clamping available to 0",
            user_id, asset, locked, holding,
        )
        available = 0
    return Availability(
        asset=asset,
        holding=holding,
        locked=locked,
        available=available,
        next_unlock_at=next_unlock_at,
    )


async def get_availability(holdings, purchases, user_id: int, asset: str, now: datetime,
                           base_asset: str = "BTC") -> Availability:
    holding = await holdings.get_amount(user_id, asset) or 0
    if asset == base_asset:
        return compute_availability(asset, holding, 0, user_id=user_id)
    locked = await purchases.sum_locked(user_id, asset, now)
    next_unlock_at = await purchases.next_unlock(user_id, asset, now) if locked else None
    return compute_availability(asset, holding, locked, next_unlock_at, user_id=user_id)
