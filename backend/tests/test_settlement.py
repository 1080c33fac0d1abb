from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from satsgame.models.holding import Holding
from satsgame.models.purchase import Purchase
from satsgame.models.trade import Trade
from satsgame.services.errors import (
    InvalidAssetPair, InvalidAmount, PriceUnavailable, InsufficientBalance,
    AssetLocked, PersistenceFailure,
)
from satsgame.services.ledger import HoldingsStore
from satsgame.services.reconciliation import expected_holdings
from satsgame.services.settlement import SettlementService, convert_amount
from satsgame.services.units import AmountUnit

# 1_000_000 sats at BTC=$115000 is $1150; at AMZN=$145.80 that is 7.88751714... shares
AMZN_FOR_1M_SATS = 788_751_715


@pytest.fixture
def service(db, prices, clock):
    return SettlementService(db, prices, clock=clock)


async def balances(db, user_id):
    rows = await db.execute(
        select(Holding.asset_symbol, Holding.amount).where(Holding.user_id == user_id)
    )
    return {sym: int(amount) for sym, amount in rows}


async def snapshot(db):
    holdings = (await db.execute(
        select(Holding.id, Holding.user_id, Holding.asset_symbol, Holding.amount).order_by(Holding.id)
    )).all()
    lots = (await db.execute(
        select(Purchase.id, Purchase.asset_symbol, Purchase.amount, Purchase.btc_spent,
               Purchase.locked_until).order_by(Purchase.id)
    )).all()
    trades = (await db.execute(select(Trade.id).order_by(Trade.id))).all()
    return holdings, lots, trades


def test_convert_amount_matches_usd_formula():
    assert convert_amount(1_000_000, Decimal("115000"), Decimal("145.80")) == AMZN_FOR_1M_SATS
    assert convert_amount(AMZN_FOR_1M_SATS, Decimal("145.80"), Decimal("115000")) == 1_000_000


@pytest.mark.asyncio
async def test_buy_asset_round_trip(db, user_id, service, clock):
    result = await service.execute(user_id, "BTC", "AMZN", 1_000_000, AmountUnit.sats)

    assert result.from_amount == 1_000_000
    assert result.to_amount == AMZN_FOR_1M_SATS
    assert result.locked_until == clock.now + timedelta(hours=24)
    assert await balances(db, user_id) == {"BTC": 99_000_000, "AMZN": AMZN_FOR_1M_SATS}

    lots = list(await db.scalars(select(Purchase)))
    assert len(lots) == 1
    assert lots[0].asset_symbol == "AMZN"
    assert lots[0].amount == AMZN_FOR_1M_SATS
    assert lots[0].btc_spent == 1_000_000
    assert lots[0].locked_until == clock.now + timedelta(hours=24)

    trades = list(await db.scalars(select(Trade)))
    assert len(trades) == 1
    assert (trades[0].from_asset, trades[0].to_asset) == ("BTC", "AMZN")
    assert (trades[0].from_amount, trades[0].to_amount) == (1_000_000, AMZN_FOR_1M_SATS)
    assert Decimal(trades[0].btc_price_usd) == Decimal("115000")
    assert Decimal(trades[0].asset_price_usd) == Decimal("145.80")


@pytest.mark.asyncio
async def test_describe_result(db, user_id, service):
    result = await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    assert result.describe() == "swapped 0.01000000 BTC for 7.88751715 AMZN"


@pytest.mark.asyncio
async def test_selling_fresh_lot_is_locked_until_lock_expires(db, user_id, service, clock):
    await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    unlock_at = (await db.scalar(select(Purchase))).locked_until

    with pytest.raises(AssetLocked) as exc:
        await service.execute(user_id, "AMZN", "BTC", AMZN_FOR_1M_SATS)
    assert exc.value.available == 0
    assert exc.value.locked == AMZN_FOR_1M_SATS
    assert exc.value.unlock_at == unlock_at

    clock.advance(hours=24, seconds=1)
    result = await service.execute(user_id, "AMZN", "BTC", AMZN_FOR_1M_SATS)
    assert result.to_amount == 1_000_000
    assert result.locked_until is None
    assert await balances(db, user_id) == {"BTC": 100_000_000, "AMZN": 0}
    # selling creates no lot
    assert len(list(await db.scalars(select(Purchase)))) == 1


@pytest.mark.asyncio
async def test_partial_lock_only_blocks_the_locked_part(db, user_id, service, clock):
    first = await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    clock.advance(hours=13)
    second = await service.execute(user_id, "BTC", "AMZN", 2_000_000)
    clock.advance(hours=12)  # first lot unlocked, second still locked

    with pytest.raises(AssetLocked) as exc:
        await service.execute(user_id, "AMZN", "BTC", first.to_amount + 1)
    assert exc.value.available == first.to_amount
    assert exc.value.locked == second.to_amount

    await service.execute(user_id, "AMZN", "BTC", first.to_amount)
    assert (await balances(db, user_id))["AMZN"] == second.to_amount


@pytest.mark.asyncio
async def test_asset_unit_sells_whole_shares(db, user_id, service, clock):
    await service.execute(user_id, "BTC", "AMZN", "0.01", AmountUnit.btc)
    clock.advance(days=2)
    result = await service.execute(user_id, "AMZN", "BTC", "7", AmountUnit.asset)
    assert result.from_amount == 700_000_000
    assert (await balances(db, user_id))["AMZN"] == AMZN_FOR_1M_SATS - 700_000_000


@pytest.mark.asyncio
@pytest.mark.parametrize("from_asset,to_asset", [
    ("AMZN", "AAPL"),
    ("BTC", "BTC"),
    ("", "AMZN"),
])
async def test_invalid_pairs(db, user_id, service, from_asset, to_asset):
    with pytest.raises(InvalidAssetPair):
        await service.execute(user_id, from_asset, to_asset, 1_000_000)


@pytest.mark.asyncio
@pytest.mark.parametrize("unit", [AmountUnit.btc, AmountUnit.msats, AmountUnit.ksats, AmountUnit.sats])
async def test_zero_amount_fails_for_every_unit(db, user_id, service, unit):
    with pytest.raises(InvalidAmount):
        await service.execute(user_id, "BTC", "AMZN", 0, unit)


@pytest.mark.asyncio
async def test_zero_asset_units_fail(db, user_id, service):
    with pytest.raises(InvalidAmount):
        await service.execute(user_id, "AMZN", "BTC", "0", AmountUnit.asset)


@pytest.mark.asyncio
async def test_non_numeric_amount(db, user_id, service):
    with pytest.raises(InvalidAmount):
        await service.execute(user_id, "BTC", "AMZN", "lots")


@pytest.mark.asyncio
async def test_minimum_trade_applies_to_base_sells_only(db, user_id, prices, clock):
    service = SettlementService(db, prices, clock=clock, min_trade_sats=100_000)
    with pytest.raises(InvalidAmount, match="Minimum trade amount"):
        await service.execute(user_id, "BTC", "AMZN", 99_999)

    result = await service.execute(user_id, "BTC", "AMZN", 100_000)
    clock.advance(days=1, seconds=1)
    # a small asset sell is not held to the sats minimum
    await service.execute(user_id, "AMZN", "BTC", result.to_amount // 10)


@pytest.mark.asyncio
async def test_missing_price(db, user_id, service):
    with pytest.raises(PriceUnavailable) as exc:
        await service.execute(user_id, "BTC", "XYZ", 1_000_000)
    assert exc.value.symbol == "XYZ"


@pytest.mark.asyncio
async def test_missing_base_price(db, user_id, price_factory, clock):
    service = SettlementService(db, price_factory(AMZN="145.80"), clock=clock)
    with pytest.raises(PriceUnavailable) as exc:
        await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    assert exc.value.symbol == "BTC"


@pytest.mark.asyncio
async def test_insufficient_base_balance(db, user_id, service):
    with pytest.raises(InsufficientBalance) as exc:
        await service.execute(user_id, "BTC", "AMZN", 2, AmountUnit.btc)
    assert exc.value.held == 100_000_000
    assert exc.value.requested == 200_000_000


@pytest.mark.asyncio
async def test_selling_asset_never_held(db, user_id, service):
    with pytest.raises(InsufficientBalance):
        await service.execute(user_id, "AAPL", "BTC", 1, AmountUnit.asset)


@pytest.mark.asyncio
async def test_same_invalid_input_fails_the_same_way_without_changes(db, user_id, service):
    await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    before = await snapshot(db)
    for _ in range(2):
        with pytest.raises(AssetLocked):
            await service.execute(user_id, "AMZN", "BTC", 1)
        assert await snapshot(db) == before
    for _ in range(2):
        with pytest.raises(InsufficientBalance):
            await service.execute(user_id, "BTC", "AMZN", 5, AmountUnit.btc)
        assert await snapshot(db) == before


@pytest.mark.asyncio
async def test_storage_failure_on_trade_append_rolls_back(db, user_id, service, monkeypatch):
    await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    before = await snapshot(db)

    async def broken_append(*args, **kwargs):
        raise OperationalError("INSERT INTO trades", {}, Exception("disk I/O error"))

    monkeypatch.setattr(service.trades, "append_trade", broken_append)
    with pytest.raises(PersistenceFailure) as exc:
        await service.execute(user_id, "BTC", "AMZN", 3_000_000)
    assert isinstance(exc.value.__cause__, OperationalError)
    assert await snapshot(db) == before


@pytest.mark.asyncio
async def test_failure_while_creating_lot_rolls_back(db, user_id, service, monkeypatch):
    before = await snapshot(db)

    async def broken_lot(*args, **kwargs):
        raise RuntimeError("lot store offline")

    monkeypatch.setattr(service.purchases, "create_lot", broken_lot)
    with pytest.raises(RuntimeError):
        await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    assert await snapshot(db) == before
    assert await balances(db, user_id) == {"BTC": 100_000_000}


@pytest.mark.asyncio
async def test_negative_holding_guard_surfaces_as_persistence_failure(db, user_id, service, monkeypatch):
    before = await snapshot(db)
    real_adjust = HoldingsStore.adjust_holding

    async def double_debit(self, user_id, asset, delta):
        if delta < 0:
            delta = -200_000_000
        return await real_adjust(self, user_id, asset, delta)

    monkeypatch.setattr(HoldingsStore, "adjust_holding", double_debit)
    with pytest.raises(PersistenceFailure):
        await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    assert await snapshot(db) == before


@pytest.mark.asyncio
async def test_value_is_conserved_across_many_trades(db, user_id, service, clock):
    await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    await service.execute(user_id, "BTC", "AAPL", 5, AmountUnit.ksats)
    await service.execute(user_id, "BTC", "AAPL", 3, AmountUnit.msats)
    clock.advance(hours=25)
    await service.execute(user_id, "AMZN", "BTC", 123_456_789)
    await service.execute(user_id, "AAPL", "BTC", "0.01", AmountUnit.asset)

    trades = list(await db.scalars(select(Trade).where(Trade.user_id == user_id)))
    assert len(trades) == 5
    assert await balances(db, user_id) == expected_holdings(trades, grant_sats=100_000_000)


@pytest.mark.asyncio
async def test_users_are_isolated(db, user_id, service):
    from satsgame.services.accounts import open_account
    other_id = (await open_account(db, "hal", "hal@example.com", grant_sats=50_000_000)).id
    await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    with pytest.raises(InsufficientBalance):
        await service.execute(other_id, "AMZN", "BTC", 1)
    assert await balances(db, other_id) == {"BTC": 50_000_000}


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["1e30", 10**30])
async def test_huge_amount_is_rejected_as_invalid(db, user_id, service, amount):
    before = await snapshot(db)
    with pytest.raises(InvalidAmount):
        await service.execute(user_id, "BTC", "AMZN", amount, AmountUnit.sats)
    assert await snapshot(db) == before


@pytest.mark.asyncio
async def test_conversion_beyond_column_range_is_rejected(db, user_id, price_factory, clock):
    # one BTC buys 1.15e21 units of an asset priced at $0.00000001
    service = SettlementService(db, price_factory(BTC="115000", PENNY="0.00000001"), clock=clock)
    before = await snapshot(db)
    with pytest.raises(InvalidAmount, match="ledger limit"):
        await service.execute(user_id, "BTC", "PENNY", 1, AmountUnit.btc)
    assert await snapshot(db) == before
    assert convert_amount(100_000_000, Decimal("115000"), Decimal("0.00000001")) == 115 * 10**19


@pytest.mark.asyncio
async def test_btc_price_is_recorded_at_full_precision(db, user_id, price_factory, clock):
    service = SettlementService(db, price_factory(BTC="115000.12345678", AMZN="145.80"), clock=clock)
    await service.execute(user_id, "BTC", "AMZN", 1_000_000)
    trade_price = await db.scalar(select(Trade.btc_price_usd))
    lot_price = await db.scalar(select(Purchase.btc_price_usd))
    assert Decimal(trade_price) == Decimal("115000.12345678")
    assert Decimal(lot_price) == Decimal("115000.12345678")
