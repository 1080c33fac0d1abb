from decimal import Decimal
from pydantic import BaseModel, Field

class OpenAccountRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    is_admin: bool = False

class SetPriceRequest(BaseModel):
    price_usd: Decimal = Field(gt=0)
