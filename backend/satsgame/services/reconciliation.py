"""Ledger audit.

Replays every user's trade log on top of the starting grant and compares the
result with the stored holdings. Also flags holdings whose locked lots exceed
the balance. Read-only: discrepancies are reported, never repaired.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from satsgame.database import session_scope
from satsgame.models.holding import Holding
from satsgame.models.purchase import Purchase
from satsgame.models.trade import Trade
from satsgame.models.user import User
from satsgame.services.ledger import utcnow

logger = logging.getLogger(__name__)


@dataclass
class Discrepancy:
    user_id: int
    asset: str
    kind: str  # "balance_mismatch" | "over_locked"
    expected: int
    actual: int


@dataclass
class AuditReport:
    checked_at: datetime
    users_checked: int = 0
    discrepancies: List[Discrepancy] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.discrepancies

    def to_dict(self) -> dict:
        return {
            "checked_at": self.checked_at.isoformat(),
            "users_checked": self.users_checked,
            "ok": self.ok,
            "discrepancies": [asdict(d) for d in self.discrepancies],
        }


def expected_holdings(trades, grant_sats: int, base_asset: str = "BTC") -> Dict[str, int]:
    balances: Dict[str, int] = defaultdict(int)
    balances[base_asset] += grant_sats
    for t in trades:
        balances[t.from_asset] -= int(t.from_amount)
        balances[t.to_asset] += int(t.to_amount)
    return dict(balances)


async def audit_user(db: AsyncSession, user_id: int, grant_sats: int, base_asset: str = "BTC",
                     now: Optional[datetime] = None) -> List[Discrepancy]:
    now = now or utcnow()
    trades = list(await db.scalars(
        select(Trade).where(Trade.user_id == user_id).order_by(Trade.created_at, Trade.id)
    ))
    holdings = {
        h.asset_symbol: int(h.amount)
        for h in await db.scalars(select(Holding).where(Holding.user_id == user_id))
    }
    expected = expected_holdings(trades, grant_sats, base_asset)

    found = []
    for asset in sorted(set(expected) | set(holdings)):
        exp = expected.get(asset, 0)
        act = holdings.get(asset, 0)
        if exp != act:
            found.append(Discrepancy(user_id, asset, "balance_mismatch", exp, act))

    locked_rows = await db.execute(
        select(Purchase.asset_symbol, func.sum(Purchase.amount))
        .where(Purchase.user_id == user_id, Purchase.locked_until > now)
        .group_by(Purchase.asset_symbol)
    )
    for asset, locked in locked_rows:
        if int(locked) > holdings.get(asset, 0):
            found.append(Discrepancy(user_id, asset, "over_locked", holdings.get(asset, 0), int(locked)))
    return found


async def audit_ledger(db: AsyncSession, grant_sats: int, base_asset: str = "BTC",
                       now: Optional[datetime] = None) -> AuditReport:
    report = AuditReport(checked_at=now or utcnow())
    user_ids = list(await db.scalars(select(User.id).order_by(User.id)))
    for user_id in user_ids:
        report.discrepancies.extend(await audit_user(db, user_id, grant_sats, base_asset, report.checked_at))
        report.users_checked += 1
    for d in report.discrepancies:
        logger.warning("[audit] user %s %s %s: expected %d, actual %d",
                       d.user_id, d.asset, d.kind, d.expected, d.actual)
    logger.info("[audit] checked %d users, %d discrepancies", report.users_checked, len(report.discrepancies))
    return report


async def scheduled_audit():
    from satsgame.config import settings
    async with session_scope() as db:
        await audit_ledger(db, settings.INITIAL_GRANT_SATS, settings.BASE_ASSET)
