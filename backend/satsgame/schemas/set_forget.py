from decimal import Decimal
from typing import List
from pydantic import BaseModel, Field

class AllocationIn(BaseModel):
    asset_symbol: str = Field(min_length=1, max_length=10)
    allocation_percentage: Decimal

class CreateSetForgetRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    initial_sats: int = Field(gt=0)
    # split and sum are checked by the service so clients get one error format
    allocations: List[AllocationIn]
