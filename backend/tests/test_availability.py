import logging
from datetime import timedelta

import pytest

from satsgame.services.availability import compute_availability, get_availability
from satsgame.services.ledger import HoldingsStore, PurchaseLedger
from satsgame.services.settlement import SettlementService


def test_available_is_holding_minus_locked():
    a = compute_availability("AMZN", holding=1_000, locked=400)
    assert a.available == 600
    assert a.lock_status == "partial"


def test_lock_status():
    assert compute_availability("AMZN", 1_000, 0).lock_status == "unlocked"
    assert compute_availability("AMZN", 1_000, 1_000).lock_status == "locked"


def test_over_locked_holding_clamps_to_zero_and_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="satsgame.services.availability"):
        a = compute_availability("AMZN", holding=100, locked=250, user_id=7)
    assert a.available == 0
    assert a.lock_status == "locked"
    assert "exceeds holding" in caplog.text


@pytest.mark.asyncio
async def test_availability_follows_lot_expiry(db, user_id, prices, clock):
    service = SettlementService(db, prices, clock=clock)
    first = await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    clock.advance(hours=6)
    second = await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    holdings, purchases = HoldingsStore(db), PurchaseLedger(db)

    a = await get_availability(holdings, purchases, user_id, "AMZN", clock.now)
    assert a.holding == first.to_amount + second.to_amount
    assert a.available == 0
    assert a.next_unlock_at == first.locked_until

    a = await get_availability(holdings, purchases, user_id, "AMZN", clock.now + timedelta(hours=18, seconds=1))
    assert a.available == first.to_amount
    assert a.locked == second.to_amount
    assert a.next_unlock_at == second.locked_until

    a = await get_availability(holdings, purchases, user_id, "AMZN", clock.now + timedelta(days=2))
    assert (a.locked, a.available, a.next_unlock_at) == (0, a.holding, None)


@pytest.mark.asyncio
async def test_unlock_instant_is_not_locked(db, user_id, prices, clock):
    service = SettlementService(db, prices, clock=clock)
    result = await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    locked = await PurchaseLedger(db).sum_locked(user_id, "AMZN", result.locked_until)
    assert locked == 0


@pytest.mark.asyncio
async def test_base_asset_is_never_locked(db, user_id, clock):
    a = await get_availability(HoldingsStore(db), PurchaseLedger(db), user_id, "BTC", clock.now)
    assert (a.holding, a.locked, a.available) == (100_000_000, 0, 100_000_000)


@pytest.mark.asyncio
async def test_unknown_asset_has_nothing_available(db, user_id, clock):
    a = await get_availability(HoldingsStore(db), PurchaseLedger(db), user_id, "TSLA", clock.now)
    assert (a.holding, a.available) == (0, 0)
