"""Sale checkout.

Header, line items, stock decrements and the receivable are written in one
database transaction: either the whole sale is recorded or none of it is.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session

from kasir.core.errors import AppError, not_found, validation_error
from kasir.db.queries import fetch_all, fetch_one, make_display_id, new_id, utcnow
from kasir.schemas.sales import CheckoutRequest
from kasir.services import installments
from kasir.services.cart import Cart
from kasir.services.inventory import MOVEMENT_SALE, decrement_stock, load_products
from kasir.services.pricing import (
    LineItem,
    PaymentMethod,
    PaymentResult,
    PriceTier,
    Summary,
    compute_summary,
    evaluate_payment,
)

logger = logging.getLogger(__name__)

GENERAL_CUSTOMER_NAME = "Umum"

SALE_COLUMNS = """
    id, display_id, customer_id, customer_name_cache, customer_type, subtotal,
    discount, total, cost, profit, payment_method, amount_paid, change_amount,
    remaining_amount, kasir_id, created_at
"""


def resolve_customer(
    db: Session,
    customer_id: str | None,
    customer_name: str | None,
    customer_type: PriceTier | None,
) -> tuple[dict[str, Any] | None, str, PriceTier]:
    """Customer row (if any), the name to print, and the price tier to charge."""
    if not customer_id:
        return None, customer_name or GENERAL_CUSTOMER_NAME, customer_type or PriceTier.RETAIL

    customer = fetch_one(
        db,
        "SELECT id, name, phone, customer_type FROM customers WHERE id = :id",
        {"id": customer_id},
    )
    if not customer:
        raise not_found("Customer not found", customer_id=customer_id)
    tier = customer_type or PriceTier(customer["customer_type"])
    return customer, customer["name"], tier


def build_cart(products: dict[str, dict[str, Any]], items: list[tuple[str, int]]) -> Cart:
    cart = Cart()
    for product_id, quantity in items:
        cart.add(products[product_id], quantity)
    return cart


def summarize(lines: list[LineItem], discount: int, service_fee: int = 0) -> Summary:
    summary = compute_summary(lines, discount=discount, service_fee=service_fee)
    if summary.total < 0:
        raise validation_error(
            "Discount is larger than the subtotal",
            subtotal=summary.subtotal,
            discount=discount,
        )
    return summary


def price_transaction(
    lines: list[LineItem],
    discount: int,
    method: PaymentMethod,
    paid: int,
    service_fee: int = 0,
) -> tuple[Summary, PaymentResult]:
    summary = summarize(lines, discount, service_fee)
    return summary, evaluate_payment(summary.total, paid, method)


def get_sale(db: Session, sale_id: str) -> dict[str, Any] | None:
    sale = fetch_one(db, f"SELECT {SALE_COLUMNS} FROM sales_transactions WHERE id = :id", {"id": sale_id})
    if not sale:
        return None
    sale["items"] = fetch_all(
        db,
        """
        SELECT product_id, product_name, quantity, buy_price_at_sale, sale_price_at_sale
        FROM sales_transaction_items
        WHERE transaction_id = :id
        ORDER BY product_name ASC
        """,
        {"id": sale_id},
    )
    installment = installments.get_installment_by_display_id(db, sale["display_id"])
    sale["installment_id"] = installment["id"] if installment else None
    return sale


def require_sale(db: Session, sale_id: str) -> dict[str, Any]:
    sale = get_sale(db, sale_id)
    if not sale:
        raise not_found("Sale not found", sale_id=sale_id)
    return sale


def list_sales(db: Session, start: datetime | None = None, end: datetime | None = None) -> list[dict[str, Any]]:
    clauses = []
    params: dict[str, Any] = {}
    if start:
        clauses.append("created_at >= :start")
        params["start"] = start
    if end:
        clauses.append("created_at < :end")
        params["end"] = end
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return fetch_all(
        db,
        f"SELECT {SALE_COLUMNS} FROM sales_transactions {where} ORDER BY created_at DESC",
        params,
    )


def checkout(db: Session, payload: CheckoutRequest, user: dict[str, Any]) -> dict[str, Any]:
    if not payload.items:
        raise validation_error("Cart is empty")

    customer, customer_name, tier = resolve_customer(
        db, payload.customer_id, payload.customer_name, payload.customer_type
    )

    products = load_products(db, [item.product_id for item in payload.items])
    cart = build_cart(products, [(item.product_id, item.quantity) for item in payload.items])
    lines = cart.lines(tier)
    summary, payment = price_transaction(lines, payload.discount, payload.payment_method, payload.amount_paid)

    if payment.remaining > 0 and not customer:
        raise validation_error("An unpaid balance needs a registered customer")

    sale_id = new_id()
    display_id = make_display_id("TRX")
    now = utcnow()

    try:
        db.execute(
            text(
                """
                INSERT INTO sales_transactions (
                  id,
                  display_id,
                  customer_id,
                  customer_name_cache,
                  customer_type,
                  subtotal,
                  discount,
                  total,
                  cost,
                  profit,
                  payment_method,
                  amount_paid,
                  change_amount,
                  remaining_amount,
                  kasir_id,
                  created_at
                )
                VALUES (
                  :id,
                  :display_id,
                  :customer_id,
                  :customer_name,
                  :customer_type,
                  :subtotal,
                  :discount,
                  :total,
                  :cost,
                  :profit,
                  :payment_method,
                  :amount_paid,
                  :change_amount,
                  :remaining_amount,
                  :kasir_id,
                  :created_at
                )
                """
            ),
            {
                "id": sale_id,
                "display_id": display_id,
                "customer_id": customer["id"] if customer else None,
                "customer_name": customer_name,
                "customer_type": tier.value,
                "subtotal": summary.subtotal,
                "discount": summary.discount,
                "total": summary.total,
                "cost": summary.cost,
                "profit": summary.profit,
                "payment_method": payment.method.value,
                "amount_paid": payment.paid,
                "change_amount": payment.change,
                "remaining_amount": payment.remaining,
                "kasir_id": user["id"],
                "created_at": now,
            },
        )

        for line in lines:
            db.execute(
                text(
                    """
                    INSERT INTO sales_transaction_items (
                      id,
                      transaction_id,
                      product_id,
                      product_name,
                      quantity,
                      buy_price_at_sale,
                      sale_price_at_sale
                    )
                    VALUES (
                      :id,
                      :transaction_id,
                      :product_id,
                      :product_name,
                      :quantity,
                      :buy_price,
                      :sale_price
                    )
                    """
                ),
                {
                    "id": new_id(),
                    "transaction_id": sale_id,
                    "product_id": line.product_id,
                    "product_name": line.name,
                    "quantity": line.quantity,
                    "buy_price": line.buy_price,
                    "sale_price": line.sale_price,
                },
            )
            decrement_stock(
                db,
                line.product_id,
                line.quantity,
                MOVEMENT_SALE,
                reference_id=sale_id,
                user_id=user["id"],
                reason=f"Sale {display_id}",
            )

        if payment.remaining > 0:
            installments.upsert_installment(
                db,
                display_id=display_id,
                source=installments.SOURCE_SALE,
                customer_id=customer["id"],
                customer_name=customer_name,
                transaction_date=now,
                total_amount=summary.total,
                initial_payment=payment.paid,
                details=f"{len(lines)} item(s)",
                user_id=user["id"],
            )

        db.commit()
    except AppError as exc:
        db.rollback()
        logger.warning("Checkout %s rejected: %s", display_id, exc.message)
        raise
    except Exception:
        db.rollback()
        logger.exception("Checkout %s failed", display_id)
        raise

    logger.info(
        "Checkout %s recorded: %s item(s), total %s, remaining %s",
        display_id,
        cart.count,
        summary.total,
        payment.remaining,
    )
    return require_sale(db, sale_id)
