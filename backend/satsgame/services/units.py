"""Amount units accepted by the trade endpoint and their scaling to smallest units."""
import enum
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from satsgame.services.errors import InvalidAmount

SMALLEST_PER_WHOLE = 100_000_000
# signed 64-bit, the range of the holdings/purchases/trades amount columns
MAX_SMALLEST_UNITS = 2**63 - 1


class AmountUnit(str, enum.Enum):
    btc = "btc"        # one whole unit
    msats = "msats"    # legacy UI scaling: 1 msats == 1_000_000 sats
    ksats = "ksats"    # 1_000 sats
    sats = "sats"      # smallest unit of the from-asset
    asset = "asset"    # one whole non-base asset unit


UNIT_FACTORS = {
    AmountUnit.btc: SMALLEST_PER_WHOLE,
    AmountUnit.msats: 1_000_000,
    AmountUnit.ksats: 1_000,
    AmountUnit.sats: 1,
    AmountUnit.asset: SMALLEST_PER_WHOLE,
}

BASE_ONLY_UNITS = {AmountUnit.msats, AmountUnit.ksats}


def to_decimal(value: Union[int, float, str, Decimal]) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmount(f"Amount must be a number, got {value!r}")
    try:
        dec = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmount(f"Amount must be a number, got {value!r}")
    if not dec.is_finite():
        raise InvalidAmount(f"Amount must be a finite number, got {value!r}")
    return dec


def normalize_amount(value, unit: Union[AmountUnit, str], from_is_base: bool) -> int:
    """Convert ``value`` expressed in ``unit`` to an integer count of smallest units.

    Raises InvalidAmount for unknown units, units that do not apply to the
    from-asset, non-numeric input, and anything that rounds to zero or below.
    """
    try:
        unit = AmountUnit(unit)
    except ValueError:
        raise InvalidAmount(f"Unknown amount unit {unit!r}")

    if unit in BASE_ONLY_UNITS and not from_is_base:
        raise InvalidAmount(f"Unit '{unit.value}' only applies when selling the base asset")
    if unit == AmountUnit.asset and from_is_base:
        raise InvalidAmount("Unit 'asset' only applies when selling a non-base asset")

    try:
        scaled = (to_decimal(value) * UNIT_FACTORS[unit]).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # quantize overflows the context precision long before int64
        raise InvalidAmount(f"Amount {value} {unit.value} is too large")
    if scaled <= 0:
        raise InvalidAmount(f"Amount must be positive, got {value} {unit.value}")
    check_storable(int(scaled))
    return int(scaled)


def check_storable(amount: int) -> int:
    """Reject amounts that do not fit the BigInteger ledger columns."""
    if amount > MAX_SMALLEST_UNITS:
        raise InvalidAmount(f"Amount of {amount} smallest units exceeds the ledger limit")
    return amount


def format_units(amount: int) -> str:
    """Render smallest units as a whole-unit decimal string with 8 places."""
    return f"{Decimal(amount) / SMALLEST_PER_WHOLE:.8f}"
