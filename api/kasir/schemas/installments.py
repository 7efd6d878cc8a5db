from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class ManualInstallmentRequest(BaseModel):
    customer_id: str
    amount: int = Field(gt=0)
    description: str | None = None


class PaymentRequest(BaseModel):
    amount: int
    note: str | None = None


class PaymentEntry(BaseModel):
    id: str
    amount: int
    note: str | None
    received_by: str | None
    paid_at: datetime


class InstallmentResponse(BaseModel):
    id: str
    display_id: str
    source: Literal["sale", "service", "manual"]
    customer_id: str | None
    customer_name: str
    transaction_date: datetime
    total_amount: int
    paid_amount: int
    remaining_amount: int
    status: Literal["unpaid", "paid"]
    details: str | None
    created_at: datetime
    updated_at: datetime


class InstallmentDetail(InstallmentResponse):
    payment_history: list[PaymentEntry] = []
