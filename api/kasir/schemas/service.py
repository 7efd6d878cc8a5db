import datetime as dt
from enum import Enum

from pydantic import BaseModel, Field

from kasir.services.pricing import PaymentMethod, PriceTier


class ServiceStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"
    PICKED_UP = "picked_up"


class ServiceEntryCreate(BaseModel):
    customer_id: str
    category: str | None = Field(default=None, max_length=100)
    device_type: str | None = Field(default=None, max_length=100)
    damage_type: str | None = Field(default=None, max_length=200)
    description: str | None = None
    status: ServiceStatus = ServiceStatus.PENDING
    date: dt.date | None = None
    service_info: str | None = None


class ServiceEntryUpdate(BaseModel):
    category: str | None = Field(default=None, max_length=100)
    device_type: str | None = Field(default=None, max_length=100)
    damage_type: str | None = Field(default=None, max_length=200)
    description: str | None = None
    status: ServiceStatus | None = None
    service_info: str | None = None
    info_date: dt.date | None = None


class ServiceEntryResponse(BaseModel):
    id: str
    customer_id: str
    customer_name: str | None = None
    customer_phone: str | None = None
    kasir_id: str | None
    category: str | None
    device_type: str | None
    damage_type: str | None
    description: str | None
    status: ServiceStatus
    date: dt.date
    service_info: str | None
    info_date: dt.date | None
    created_at: dt.datetime


class ServiceStatusView(BaseModel):
    id: str
    created_at: dt.datetime
    category: str | None
    device_type: str | None
    damage_type: str | None
    description: str | None
    status: ServiceStatus
    date: dt.date
    service_info: str | None
    customer_name: str | None
    customer_phone: str | None


class PartInput(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)


class ServiceBillingRequest(BaseModel):
    service_entry_id: str
    description: str | None = None
    service_fee: int = Field(default=0, ge=0)
    parts: list[PartInput] = []
    customer_type: PriceTier | None = None
    discount: int = Field(default=0, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    amount_paid: int = Field(ge=0)


class ServiceRevisionRequest(BaseModel):
    description: str | None = None
    service_fee: int = Field(default=0, ge=0)
    parts: list[PartInput] = []
    discount: int = Field(default=0, ge=0)


class PartUsedResponse(BaseModel):
    product_id: str | None
    product_name: str
    quantity: int
    buy_price: int
    sale_price: int


class ServiceTransactionResponse(BaseModel):
    id: str
    display_id: str
    service_entry_id: str
    customer_id: str | None
    customer_name_cache: str
    customer_type: PriceTier
    description: str | None
    service_fee: int
    subtotal: int
    discount: int
    total_amount: int
    cost: int
    profit: int
    payment_method: PaymentMethod
    amount_paid: int
    change_amount: int
    remaining_amount: int
    revision: int
    kasir_id: str | None
    created_at: dt.datetime
    updated_at: dt.datetime
    parts: list[PartUsedResponse] = []
    installment_id: str | None = None
