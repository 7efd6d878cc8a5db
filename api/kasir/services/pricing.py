from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from kasir.core.errors import validation_error


class PriceTier(str, Enum):
    RETAIL = "retail"
    RESELLER = "reseller"
    MEMBER = "member"


class PaymentMethod(str, Enum):
    CASH = "cash"
    INSTALLMENT = "installment"


def unit_price(product: dict, tier: PriceTier) -> int:
    """Sale price of a product row for a customer tier.

    Reseller and member customers both buy at the reseller price.
    """
    if tier in (PriceTier.RESELLER, PriceTier.MEMBER):
        return int(product["reseller_price"])
    return int(product["retail_price"])


@dataclass(frozen=True)
class LineItem:
    product_id: str
    name: str
    quantity: int
    buy_price: int
    sale_price: int

    @property
    def line_total(self) -> int:
        return self.sale_price * self.quantity

    @property
    def line_cost(self) -> int:
        return self.buy_price * self.quantity


@dataclass(frozen=True)
class Summary:
    subtotal: int
    discount: int
    total: int
    cost: int
    profit: int


@dataclass(frozen=True)
class PaymentResult:
    method: PaymentMethod
    paid: int
    change: int
    remaining: int


def compute_summary(lines: Iterable[LineItem], discount: int = 0, service_fee: int = 0) -> Summary:
    subtotal = service_fee
    cost = 0
    for line in lines:
        subtotal += line.line_total
        cost += line.line_cost
    total = subtotal - discount
    return Summary(
        subtotal=subtotal,
        discount=discount,
        total=total,
        cost=cost,
        profit=total - cost,
    )


def evaluate_payment(total: int, paid: int, method: PaymentMethod) -> PaymentResult:
    if paid < 0:
        raise validation_error("Payment amount cannot be negative", paid=paid)
    if method == PaymentMethod.CASH and paid < total:
        raise validation_error(
            "Cash payment is less than the total",
            total=total,
            paid=paid,
        )
    return PaymentResult(
        method=method,
        paid=paid,
        change=max(0, paid - total),
        remaining=max(0, total - paid),
    )
