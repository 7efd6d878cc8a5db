from typing import Any

from sqlalchemy import text
from sqlalchemy.orm import Session

from kasir.core.errors import conflict, not_found
from kasir.db.queries import fetch_all, fetch_one, new_id, utcnow

PRODUCT_COLUMNS = """
    id, name, category, description, barcode, buy_price, retail_price,
    reseller_price, stock, image_url, supplier_id, entry_date, created_at, updated_at
"""

MOVEMENT_RESTOCK = "RESTOCK"
MOVEMENT_SALE = "DECREASE_SALE"
MOVEMENT_SERVICE_USE = "DECREASE_SERVICE"
MOVEMENT_SERVICE_RESTORE = "RESTORE_SERVICE"


def get_product(db: Session, product_id: str) -> dict[str, Any] | None:
    return fetch_one(
        db,
        f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id = :id",
        {"id": product_id},
    )


def get_product_by_barcode(db: Session, barcode: str) -> dict[str, Any] | None:
    return fetch_one(
        db,
        f"SELECT {PRODUCT_COLUMNS} FROM products WHERE barcode = :barcode LIMIT 1",
        {"barcode": barcode},
    )


def require_product(db: Session, product_id: str) -> dict[str, Any]:
    product = get_product(db, product_id)
    if not product:
        raise not_found(f"Product not found: {product_id}", product_id=product_id)
    return product


def load_products(db: Session, product_ids: list[str]) -> dict[str, dict[str, Any]]:
    """Fetch several products at once, keyed by id; unknown ids raise not_found."""
    wanted = list(dict.fromkeys(product_ids))
    if not wanted:
        return {}
    params = {f"id_{i}": product_id for i, product_id in enumerate(wanted)}
    placeholders = ", ".join(f":{key}" for key in params)
    rows = fetch_all(
        db,
        f"SELECT {PRODUCT_COLUMNS} FROM products WHERE id IN ({placeholders})",
        params,
    )
    found = {row["id"]: row for row in rows}
    missing = [product_id for product_id in wanted if product_id not in found]
    if missing:
        raise not_found(f"Product not found: {missing[0]}", product_ids=missing)
    return found


def record_movement(
    db: Session,
    product_id: str,
    movement_type: str,
    qty_delta: int,
    reason: str | None = None,
    reference_id: str | None = None,
    user_id: str | None = None,
) -> None:
    db.execute(
        text(
            """
            INSERT INTO stock_movements (
              id,
              product_id,
              movement_type,
              qty_delta,
              reason,
              reference_id,
              performed_by_user_id,
              created_at
            )
            VALUES (
              :id,
              :product_id,
              :movement_type,
              :qty_delta,
              :reason,
              :reference_id,
              :user_id,
              :created_at
            )
            """
        ),
        {
            "id": new_id(),
            "product_id": product_id,
            "movement_type": movement_type,
            "qty_delta": qty_delta,
            "reason": reason,
            "reference_id": reference_id,
            "user_id": user_id,
            "created_at": utcnow(),
        },
    )


def decrement_stock(
    db: Session,
    product_id: str,
    quantity: int,
    movement_type: str,
    reference_id: str | None = None,
    user_id: str | None = None,
    reason: str | None = None,
) -> None:
    """Take stock away only if enough is left.

    The check and the write are one statement, so two concurrent checkouts
    cannot both take the last unit. Does not commit.
    """
    result = db.execute(
        text(
            """
            UPDATE products
            SET stock = stock - :qty,
                updated_at = :now
            WHERE id = :id
              AND stock >= :qty
            """
        ),
        {"qty": quantity, "id": product_id, "now": utcnow()},
    )
    if result.rowcount != 1:
        current = fetch_one(db, "SELECT name, stock FROM products WHERE id = :id", {"id": product_id})
        if not current:
            raise not_found(f"Product not found: {product_id}", product_id=product_id)
        raise conflict(
            f"Insufficient stock for {current['name']}. Available: {int(current['stock'])}",
            product_id=product_id,
            available=int(current["stock"]),
            requested=quantity,
        )
    record_movement(db, product_id, movement_type, -quantity, reason, reference_id, user_id)


def increment_stock(
    db: Session,
    product_id: str,
    quantity: int,
    movement_type: str,
    reference_id: str | None = None,
    user_id: str | None = None,
    reason: str | None = None,
) -> None:
    result = db.execute(
        text(
            """
            UPDATE products
            SET stock = stock + :qty,
                updated_at = :now
            WHERE id = :id
            """
        ),
        {"qty": quantity, "id": product_id, "now": utcnow()},
    )
    if result.rowcount != 1:
        raise not_found(f"Product not found: {product_id}", product_id=product_id)
    record_movement(db, product_id, movement_type, quantity, reason, reference_id, user_id)


def low_stock_products(db: Session, threshold: int) -> list[dict[str, Any]]:
    return fetch_all(
        db,
        """
        SELECT id, name, category, barcode, stock
        FROM products
        WHERE stock <= :threshold
        ORDER BY stock ASC, name ASC
        """,
        {"threshold": threshold},
    )
