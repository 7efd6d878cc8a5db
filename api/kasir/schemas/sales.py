from datetime import datetime

from pydantic import BaseModel, Field

from kasir.services.pricing import PaymentMethod, PriceTier


class SaleItemInput(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)


class CheckoutRequest(BaseModel):
    customer_id: str | None = None
    customer_name: str | None = Field(default=None, max_length=200)
    customer_type: PriceTier | None = None
    items: list[SaleItemInput]
    discount: int = Field(default=0, ge=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    amount_paid: int = Field(ge=0)


class SaleItemResponse(BaseModel):
    product_id: str | None
    product_name: str
    quantity: int
    buy_price_at_sale: int
    sale_price_at_sale: int


class SaleResponse(BaseModel):
    id: str
    display_id: str
    customer_id: str | None
    customer_name_cache: str
    customer_type: PriceTier
    subtotal: int
    discount: int
    total: int
    cost: int
    profit: int
    payment_method: PaymentMethod
    amount_paid: int
    change_amount: int
    remaining_amount: int
    kasir_id: str | None
    created_at: datetime
    items: list[SaleItemResponse] = []
    installment_id: str | None = None


class SaleListItem(BaseModel):
    id: str
    display_id: str
    customer_name_cache: str
    total: int
    profit: int
    payment_method: PaymentMethod
    remaining_amount: int
    created_at: datetime
