from decimal import Decimal
from typing import Union
from pydantic import BaseModel
from satsgame.services.units import AmountUnit

class TradeRequest(BaseModel):
    from_asset: str
    to_asset: str
    # kept loose so non-numeric input reaches the settlement validation
    amount: Union[Decimal, str]
    unit: AmountUnit = AmountUnit.sats
