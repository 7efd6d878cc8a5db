"""Repair jobs: the intake entry and the bill raised against it.

A bill can be revised after the fact. A revision puts back the stock of the
parts previously charged, charges the new set, and re-totals the receivable
while keeping whatever the customer has already paid.
"""

import logging
from datetime import date
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kasir.core.errors import AppError, conflict, not_found
from kasir.db.queries import as_datetime, fetch_all, fetch_one, make_display_id, new_id, utcnow
from kasir.schemas.service import (
    ServiceBillingRequest,
    ServiceEntryCreate,
    ServiceEntryUpdate,
    ServiceRevisionRequest,
)
from kasir.services import installments
from kasir.services.checkout import build_cart, price_transaction, resolve_customer, summarize
from kasir.services.inventory import (
    MOVEMENT_SERVICE_RESTORE,
    MOVEMENT_SERVICE_USE,
    decrement_stock,
    increment_stock,
    load_products,
)
from kasir.services.pricing import LineItem, PaymentMethod, PriceTier, evaluate_payment

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = """
    se.id, se.customer_id, se.kasir_id, se.category, se.device_type, se.damage_type,
    se.description, se.status, se.date, se.service_info, se.info_date, se.created_at,
    c.name AS customer_name, c.phone AS customer_phone
"""

TRANSACTION_COLUMNS = """
    id, display_id, service_entry_id, customer_id, customer_name_cache, customer_type,
    description, service_fee, subtotal, discount, total_amount, cost, profit,
    payment_method, amount_paid, change_amount, remaining_amount, revision, kasir_id,
    created_at, updated_at
"""


def get_entry(db: Session, entry_id: str) -> dict[str, Any] | None:
    return fetch_one(
        db,
        f"""
        SELECT {ENTRY_COLUMNS}
        FROM service_entries se
        LEFT JOIN customers c ON c.id = se.customer_id
        WHERE se.id = :id
        """,
        {"id": entry_id},
    )


def require_entry(db: Session, entry_id: str) -> dict[str, Any]:
    entry = get_entry(db, entry_id)
    if not entry:
        raise not_found("Service not found", service_entry_id=entry_id)
    return entry


def list_entries(db: Session, status: str | None = None) -> list[dict[str, Any]]:
    where = "WHERE se.status = :status" if status else ""
    return fetch_all(
        db,
        f"""
        SELECT {ENTRY_COLUMNS}
        FROM service_entries se
        LEFT JOIN customers c ON c.id = se.customer_id
        {where}
        ORDER BY se.created_at DESC
        """,
        {"status": status} if status else {},
    )


def create_entry(db: Session, payload: ServiceEntryCreate, user: dict[str, Any]) -> dict[str, Any]:
    customer = fetch_one(db, "SELECT id FROM customers WHERE id = :id", {"id": payload.customer_id})
    if not customer:
        raise not_found("Customer not found", customer_id=payload.customer_id)

    entry_id = new_id()
    now = utcnow()
    db.execute(
        text(
            """
            INSERT INTO service_entries (
              id, customer_id, kasir_id, category, device_type, damage_type,
              description, status, date, service_info, info_date, created_at
            )
            VALUES (
              :id, :customer_id, :kasir_id, :category, :device_type, :damage_type,
              :description, :status, :date, :service_info, NULL, :created_at
            )
            """
        ),
        {
            "id": entry_id,
            "customer_id": payload.customer_id,
            "kasir_id": user["id"],
            "category": payload.category,
            "device_type": payload.device_type,
            "damage_type": payload.damage_type,
            "description": payload.description,
            "status": payload.status.value,
            "date": payload.date or now.date(),
            "service_info": payload.service_info,
            "created_at": now,
        },
    )
    db.commit()
    logger.info("Service entry %s received for customer %s", entry_id, payload.customer_id)
    return require_entry(db, entry_id)


def update_entry(db: Session, entry_id: str, payload: ServiceEntryUpdate) -> dict[str, Any]:
    require_entry(db, entry_id)
    updates = payload.model_dump(exclude_unset=True)
    if updates.get("status") is None:
        updates.pop("status", None)
    else:
        updates["status"] = updates["status"].value
    if updates.get("service_info") is not None and "info_date" not in updates:
        updates["info_date"] = date.today()
    if not updates:
        return require_entry(db, entry_id)

    assignments = ", ".join(f"{column} = :{column}" for column in updates)
    db.execute(text(f"UPDATE service_entries SET {assignments} WHERE id = :id"), {**updates, "id": entry_id})
    db.commit()
    return require_entry(db, entry_id)


def billed_transaction(db: Session, entry_id: str) -> dict[str, Any] | None:
    return fetch_one(
        db,
        "SELECT id, display_id FROM service_transactions WHERE service_entry_id = :id",
        {"id": entry_id},
    )


def delete_entry(db: Session, entry_id: str) -> None:
    require_entry(db, entry_id)
    if billed_transaction(db, entry_id):
        raise conflict("Service has already been billed", service_entry_id=entry_id)
    db.execute(text("DELETE FROM service_entries WHERE id = :id"), {"id": entry_id})
    db.commit()


def get_transaction(db: Session, transaction_id: str) -> dict[str, Any] | None:
    transaction = fetch_one(
        db,
        f"SELECT {TRANSACTION_COLUMNS} FROM service_transactions WHERE id = :id",
        {"id": transaction_id},
    )
    if not transaction:
        return None
    transaction["parts"] = _parts_used(db, transaction_id)
    installment = installments.get_installment_by_display_id(db, transaction["display_id"])
    transaction["installment_id"] = installment["id"] if installment else None
    return transaction


def require_transaction(db: Session, transaction_id: str) -> dict[str, Any]:
    transaction = get_transaction(db, transaction_id)
    if not transaction:
        raise not_found("Service transaction not found", service_transaction_id=transaction_id)
    return transaction


def list_transactions(db: Session, start=None, end=None) -> list[dict[str, Any]]:
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
        f"SELECT {TRANSACTION_COLUMNS} FROM service_transactions {where} ORDER BY created_at DESC",
        params,
    )


def _parts_used(db: Session, transaction_id: str) -> list[dict[str, Any]]:
    return fetch_all(
        db,
        """
        SELECT product_id, product_name, quantity, buy_price, sale_price
        FROM service_parts_used
        WHERE service_transaction_id = :id
        ORDER BY product_name ASC
        """,
        {"id": transaction_id},
    )


def _price_parts(db: Session, parts, tier: PriceTier) -> list[LineItem]:
    products = load_products(db, [part.product_id for part in parts])
    cart = build_cart(products, [(part.product_id, part.quantity) for part in parts])
    return cart.lines(tier)


def _use_parts(
    db: Session,
    transaction_id: str,
    display_id: str,
    lines: list[LineItem],
    user_id: str,
) -> None:
    for line in lines:
        db.execute(
            text(
                """
                INSERT INTO service_parts_used (
                  id, service_transaction_id, product_id, product_name, quantity, buy_price, sale_price
                )
                VALUES (
                  :id, :transaction_id, :product_id, :product_name, :quantity, :buy_price, :sale_price
                )
                """
            ),
            {
                "id": new_id(),
                "transaction_id": transaction_id,
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
            MOVEMENT_SERVICE_USE,
            reference_id=transaction_id,
            user_id=user_id,
            reason=f"Service {display_id}",
        )


def _restore_parts(db: Session, transaction_id: str, display_id: str, user_id: str) -> None:
    for part in _parts_used(db, transaction_id):
        if part["product_id"] is None:
            continue
        increment_stock(
            db,
            part["product_id"],
            int(part["quantity"]),
            MOVEMENT_SERVICE_RESTORE,
            reference_id=transaction_id,
            user_id=user_id,
            reason=f"Revision of service {display_id}",
        )
    db.execute(
        text("DELETE FROM service_parts_used WHERE service_transaction_id = :id"),
        {"id": transaction_id},
    )


def bill_service(db: Session, payload: ServiceBillingRequest, user: dict[str, Any]) -> dict[str, Any]:
    entry = require_entry(db, payload.service_entry_id)
    already_billed = billed_transaction(db, entry["id"])
    if already_billed:
        raise conflict(
            "Service has already been billed",
            service_entry_id=entry["id"],
            display_id=already_billed["display_id"],
        )

    customer, customer_name, tier = resolve_customer(db, entry["customer_id"], None, payload.customer_type)
    lines = _price_parts(db, payload.parts, tier)
    summary, payment = price_transaction(
        lines,
        payload.discount,
        payload.payment_method,
        payload.amount_paid,
        service_fee=payload.service_fee,
    )

    transaction_id = new_id()
    display_id = make_display_id("SRV")
    now = utcnow()

    try:
        db.execute(
            text(
                """
                INSERT INTO service_transactions (
                  id, display_id, service_entry_id, customer_id, customer_name_cache,
                  customer_type, description, service_fee, subtotal, discount,
                  total_amount, cost, profit, payment_method, amount_paid,
                  change_amount, remaining_amount, revision, kasir_id, created_at, updated_at
                )
                VALUES (
                  :id, :display_id, :service_entry_id, :customer_id, :customer_name,
                  :customer_type, :description, :service_fee, :subtotal, :discount,
                  :total, :cost, :profit, :payment_method, :amount_paid,
                  :change_amount, :remaining_amount, 0, :kasir_id, :now, :now
                )
                """
            ),
            {
                "id": transaction_id,
                "display_id": display_id,
                "service_entry_id": entry["id"],
                "customer_id": customer["id"],
                "customer_name": customer_name,
                "customer_type": tier.value,
                "description": payload.description,
                "service_fee": payload.service_fee,
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
                "now": now,
            },
        )
        _use_parts(db, transaction_id, display_id, lines, user["id"])

        if payment.remaining > 0:
            installments.upsert_installment(
                db,
                display_id=display_id,
                source=installments.SOURCE_SERVICE,
                customer_id=customer["id"],
                customer_name=customer_name,
                transaction_date=now,
                total_amount=summary.total,
                initial_payment=payment.paid,
                details=_installment_details(entry),
                user_id=user["id"],
            )

        db.commit()
    except AppError as exc:
        db.rollback()
        logger.warning("Service billing %s rejected: %s", display_id, exc.message)
        raise
    except IntegrityError:
        # another billing of the same entry committed first
        db.rollback()
        logger.warning("Service billing %s lost to a concurrent billing of entry %s", display_id, entry["id"])
        raise conflict("Service has already been billed", service_entry_id=entry["id"])
    except Exception:
        db.rollback()
        logger.exception("Service billing %s failed", display_id)
        raise

    logger.info("Service %s billed: total %s, remaining %s", display_id, summary.total, payment.remaining)
    return require_transaction(db, transaction_id)


def _claim_revision(db: Session, transaction_id: str, expected: int, display_id: str) -> None:
    """Bump the revision counter only if nobody revised the bill since it was read.

    Holds the row for the rest of the transaction, so a concurrent revision
    cannot put the same parts back into stock twice.
    """
    claimed = db.execute(
        text(
            """
            UPDATE service_transactions
            SET revision = revision + 1,
                updated_at = :now
            WHERE id = :id
              AND revision = :expected
            """
        ),
        {"now": utcnow(), "id": transaction_id, "expected": expected},
    )
    if claimed.rowcount != 1:
        raise conflict(
            "Service transaction was revised by someone else; reload it",
            display_id=display_id,
            revision=expected,
        )


def revise_service(
    db: Session,
    transaction_id: str,
    payload: ServiceRevisionRequest,
    user: dict[str, Any],
) -> dict[str, Any]:
    current = require_transaction(db, transaction_id)
    display_id = current["display_id"]
    revision = int(current["revision"])
    tier = PriceTier(current["customer_type"])
    existing_installment = installments.get_installment_by_display_id(db, display_id)
    if existing_installment:
        paid = int(existing_installment["paid_amount"])
    else:
        # change handed back at billing was never kept
        paid = int(current["amount_paid"]) - int(current["change_amount"])

    try:
        _claim_revision(db, transaction_id, revision, display_id)
        _restore_parts(db, transaction_id, display_id, user["id"])
        lines = _price_parts(db, payload.parts, tier)
        summary = summarize(lines, payload.discount, service_fee=payload.service_fee)

        if existing_installment and summary.total < paid:
            raise conflict(
                "New total is below the amount already paid",
                display_id=display_id,
                paid=paid,
                total=summary.total,
            )
        # money already taken stays taken; a higher total becomes a receivable
        payment = evaluate_payment(summary.total, paid, PaymentMethod.INSTALLMENT)
        method = PaymentMethod.INSTALLMENT if payment.remaining > 0 else PaymentMethod(current["payment_method"])

        _use_parts(db, transaction_id, display_id, lines, user["id"])
        db.execute(
            text(
                """
                UPDATE service_transactions
                SET description = :description,
                    service_fee = :service_fee,
                    subtotal = :subtotal,
                    discount = :discount,
                    total_amount = :total,
                    cost = :cost,
                    profit = :profit,
                    payment_method = :payment_method,
                    change_amount = :change_amount,
                    remaining_amount = :remaining_amount,
                    updated_at = :now
                WHERE id = :id
                """
            ),
            {
                "description": payload.description if payload.description is not None else current["description"],
                "service_fee": payload.service_fee,
                "subtotal": summary.subtotal,
                "discount": summary.discount,
                "total": summary.total,
                "cost": summary.cost,
                "profit": summary.profit,
                "payment_method": method.value,
                "change_amount": payment.change,
                "remaining_amount": payment.remaining,
                "now": utcnow(),
                "id": transaction_id,
            },
        )

        if existing_installment or payment.remaining > 0:
            installments.upsert_installment(
                db,
                display_id=display_id,
                source=installments.SOURCE_SERVICE,
                customer_id=current["customer_id"],
                customer_name=current["customer_name_cache"],
                transaction_date=as_datetime(current["created_at"]),
                total_amount=summary.total,
                initial_payment=paid,
                details=_installment_details(require_entry(db, current["service_entry_id"])),
                user_id=user["id"],
            )

        db.commit()
    except AppError as exc:
        db.rollback()
        logger.warning("Revision of service %s rejected: %s", display_id, exc.message)
        raise
    except Exception:
        db.rollback()
        logger.exception("Revision of service %s failed", display_id)
        raise

    logger.info(
        "Service %s revised (revision %s): total %s",
        display_id,
        revision + 1,
        summary.total,
    )
    return require_transaction(db, transaction_id)


def _installment_details(entry: dict[str, Any]) -> str:
    parts = [entry.get("device_type"), entry.get("damage_type")]
    return " - ".join(part for part in parts if part) or "Service"


def public_status(db: Session, entry_id: str) -> dict[str, Any]:
    return require_entry(db, entry_id)
