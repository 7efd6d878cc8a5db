from datetime import datetime

from pydantic import BaseModel, Field

from kasir.services.pricing import PriceTier


class CustomerCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    phone: str | None = Field(default=None, max_length=40)
    address: str | None = None
    customer_type: PriceTier = PriceTier.RETAIL


class CustomerResponse(BaseModel):
    id: str
    name: str
    phone: str | None
    address: str | None
    customer_type: PriceTier
    created_at: datetime
