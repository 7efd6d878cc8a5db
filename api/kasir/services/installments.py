"""Receivables owed by customers and the payments made against them.

An installment is keyed by the display id of the transaction it came from, so
re-billing the same transaction updates the existing record instead of
opening a second debt. Status is derived from the remaining balance.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session

from kasir.core.errors import conflict, not_found, validation_error
from kasir.db.queries import fetch_all, fetch_one, make_display_id, new_id, utcnow

logger = logging.getLogger(__name__)

SOURCE_SALE = "sale"
SOURCE_SERVICE = "service"
SOURCE_MANUAL = "manual"

STATUS_UNPAID = "unpaid"
STATUS_PAID = "paid"

INSTALLMENT_COLUMNS = """
    id, display_id, source, customer_id, customer_name, transaction_date,
    total_amount, paid_amount, remaining_amount, status, details, created_by,
    created_at, updated_at
"""


def status_for(remaining: int) -> str:
    return STATUS_PAID if remaining <= 0 else STATUS_UNPAID


def get_installment(db: Session, installment_id: str) -> dict[str, Any] | None:
    return fetch_one(
        db,
        f"SELECT {INSTALLMENT_COLUMNS} FROM installments WHERE id = :id",
        {"id": installment_id},
    )


def get_installment_by_display_id(db: Session, display_id: str) -> dict[str, Any] | None:
    return fetch_one(
        db,
        f"SELECT {INSTALLMENT_COLUMNS} FROM installments WHERE display_id = :display_id",
        {"display_id": display_id},
    )


def require_installment(db: Session, installment_id: str) -> dict[str, Any]:
    installment = get_installment(db, installment_id)
    if not installment:
        raise not_found("Installment not found", installment_id=installment_id)
    return installment


def list_installments(db: Session, status: str | None = None, customer_id: str | None = None) -> list[dict[str, Any]]:
    clauses = []
    params: dict[str, Any] = {}
    if status:
        clauses.append("status = :status")
        params["status"] = status
    if customer_id:
        clauses.append("customer_id = :customer_id")
        params["customer_id"] = customer_id
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return fetch_all(
        db,
        f"SELECT {INSTALLMENT_COLUMNS} FROM installments {where} ORDER BY transaction_date DESC",
        params,
    )


def payment_history(db: Session, installment_id: str) -> list[dict[str, Any]]:
    return fetch_all(
        db,
        """
        SELECT id, amount, note, received_by, paid_at
        FROM installment_payments
        WHERE installment_id = :installment_id
        ORDER BY paid_at ASC
        """,
        {"installment_id": installment_id},
    )


def _insert_payment(
    db: Session,
    installment_id: str,
    amount: int,
    user_id: str | None,
    note: str | None,
    paid_at: datetime,
) -> None:
    db.execute(
        text(
            """
            INSERT INTO installment_payments (id, installment_id, amount, note, received_by, paid_at)
            VALUES (:id, :installment_id, :amount, :note, :received_by, :paid_at)
            """
        ),
        {
            "id": new_id(),
            "installment_id": installment_id,
            "amount": amount,
            "note": note,
            "received_by": user_id,
            "paid_at": paid_at,
        },
    )


def upsert_installment(
    db: Session,
    *,
    display_id: str,
    source: str,
    customer_id: str | None,
    customer_name: str,
    transaction_date: datetime,
    total_amount: int,
    initial_payment: int,
    details: str | None,
    user_id: str | None,
) -> dict[str, Any]:
    """Open the receivable for a transaction, or re-total an existing one.

    For an existing record the payments already collected are kept and only
    the total changes; a total below what was already paid is a conflict.
    Does not commit.
    """
    now = utcnow()
    existing = get_installment_by_display_id(db, display_id)

    if existing:
        paid = int(existing["paid_amount"])
        if total_amount < paid:
            raise conflict(
                "New total is below the amount already paid",
                display_id=display_id,
                paid=paid,
                total=total_amount,
            )
        remaining = total_amount - paid
        db.execute(
            text(
                """
                UPDATE installments
                SET total_amount = :total,
                    remaining_amount = :remaining,
                    status = :status,
                    customer_id = :customer_id,
                    customer_name = :customer_name,
                    details = :details,
                    updated_at = :now
                WHERE id = :id
                """
            ),
            {
                "total": total_amount,
                "remaining": remaining,
                "status": status_for(remaining),
                "customer_id": customer_id,
                "customer_name": customer_name,
                "details": details,
                "now": now,
                "id": existing["id"],
            },
        )
        logger.info("Installment %s re-totalled to %s (remaining %s)", display_id, total_amount, remaining)
        return get_installment(db, existing["id"])

    if initial_payment > total_amount:
        raise validation_error(
            "Initial payment exceeds the total",
            total=total_amount,
            paid=initial_payment,
        )

    installment_id = new_id()
    remaining = total_amount - initial_payment
    db.execute(
        text(
            """
            INSERT INTO installments (
              id,
              display_id,
              source,
              customer_id,
              customer_name,
              transaction_date,
              total_amount,
              paid_amount,
              remaining_amount,
              status,
              details,
              created_by,
              created_at,
              updated_at
            )
            VALUES (
              :id,
              :display_id,
              :source,
              :customer_id,
              :customer_name,
              :transaction_date,
              :total_amount,
              :paid_amount,
              :remaining_amount,
              :status,
              :details,
              :created_by,
              :now,
              :now
            )
            """
        ),
        {
            "id": installment_id,
            "display_id": display_id,
            "source": source,
            "customer_id": customer_id,
            "customer_name": customer_name,
            "transaction_date": transaction_date,
            "total_amount": total_amount,
            "paid_amount": initial_payment,
            "remaining_amount": remaining,
            "status": status_for(remaining),
            "details": details,
            "created_by": user_id,
            "now": now,
        },
    )
    if initial_payment > 0:
        _insert_payment(db, installment_id, initial_payment, user_id, "Initial payment", now)

    logger.info("Installment %s opened for %s (remaining %s)", display_id, customer_name, remaining)
    return get_installment(db, installment_id)


def create_manual_installment(
    db: Session,
    customer: dict[str, Any],
    amount: int,
    description: str | None,
    user_id: str | None,
) -> dict[str, Any]:
    if amount <= 0:
        raise validation_error("Amount must be positive", amount=amount)

    try:
        installment = upsert_installment(
            db,
            display_id=make_display_id("CCL"),
            source=SOURCE_MANUAL,
            customer_id=customer["id"],
            customer_name=customer["name"],
            transaction_date=utcnow(),
            total_amount=amount,
            initial_payment=0,
            details=description,
            user_id=user_id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return installment


def add_payment(
    db: Session,
    installment_id: str,
    amount: int,
    user_id: str | None,
    note: str | None = None,
) -> dict[str, Any]:
    installment = require_installment(db, installment_id)
    remaining = int(installment["remaining_amount"])

    if amount <= 0:
        raise validation_error("Payment amount must be positive", amount=amount)
    if amount > remaining:
        raise validation_error(
            "Payment amount exceeds the remaining balance",
            amount=amount,
            remaining=remaining,
        )

    now = utcnow()
    try:
        result = db.execute(
            text(
                """
                UPDATE installments
                SET paid_amount = paid_amount + :amount,
                    remaining_amount = remaining_amount - :amount,
                    status = CASE WHEN remaining_amount - :amount <= 0 THEN :paid ELSE :unpaid END,
                    updated_at = :now
                WHERE id = :id
                  AND remaining_amount >= :amount
                """
            ),
            {
                "amount": amount,
                "paid": STATUS_PAID,
                "unpaid": STATUS_UNPAID,
                "now": now,
                "id": installment_id,
            },
        )
        if result.rowcount != 1:
            raise conflict(
                "Remaining balance changed; reload the installment",
                installment_id=installment_id,
            )
        _insert_payment(db, installment_id, amount, user_id, note, now)
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("Payment of %s on installment %s rejected", amount, installment["display_id"])
        raise

    updated = get_installment(db, installment_id)
    logger.info(
        "Payment of %s recorded on installment %s (remaining %s)",
        amount,
        updated["display_id"],
        updated["remaining_amount"],
    )
    return updated
