import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kasir.core.config import settings
from kasir.core.errors import conflict, not_found
from kasir.db.queries import fetch_all, fetch_one, new_id, utcnow
from kasir.db.session import get_db
from kasir.schemas.inventory import (
    LowStockItem,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    StockIncreaseRequest,
    StorefrontProduct,
    SupplierCreate,
    SupplierResponse,
)
from kasir.services.deps import get_current_user, require_admin
from kasir.services.inventory import (
    MOVEMENT_RESTOCK,
    PRODUCT_COLUMNS,
    get_product_by_barcode,
    increment_stock,
    low_stock_products,
    record_movement,
    require_product,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


def _require_supplier(db: Session, supplier_id: str | None) -> None:
    if supplier_id and not fetch_one(db, "SELECT id FROM suppliers WHERE id = :id", {"id": supplier_id}):
        raise not_found("Supplier not found", supplier_id=supplier_id)


@router.get("/products", response_model=list[ProductResponse])
def list_products(
    q: str | None = None,
    category: str | None = None,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    clauses = []
    params = {}
    if q:
        clauses.append("(LOWER(name) LIKE :q OR barcode = :barcode)")
        params["q"] = f"%{q.lower()}%"
        params["barcode"] = q
    if category:
        clauses.append("category = :category")
        params["category"] = category
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return fetch_all(db, f"SELECT {PRODUCT_COLUMNS} FROM products {where} ORDER BY name ASC", params)


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    _require_supplier(db, payload.supplier_id)
    product_id = new_id()
    now = utcnow()

    try:
        db.execute(
            text(
                """
                INSERT INTO products (
                  id,
                  name,
                  category,
                  description,
                  barcode,
                  buy_price,
                  retail_price,
                  reseller_price,
                  stock,
                  image_url,
                  supplier_id,
                  entry_date,
                  created_at,
                  updated_at
                )
                VALUES (
                  :id,
                  :name,
                  :category,
                  :description,
                  :barcode,
                  :buy_price,
                  :retail_price,
                  :reseller_price,
                  :stock,
                  :image_url,
                  :supplier_id,
                  :entry_date,
                  :now,
                  :now
                )
                """
            ),
            {
                **payload.model_dump(),
                "id": product_id,
                "entry_date": payload.entry_date or now.date(),
                "now": now,
            },
        )

        if payload.stock > 0:
            record_movement(
                db,
                product_id,
                MOVEMENT_RESTOCK,
                payload.stock,
                reason="Initial stock",
                user_id=user["id"],
            )

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise conflict("Failed to create product", reason=str(exc.orig), barcode=payload.barcode)

    logger.info("Product %s created with stock %s", payload.name, payload.stock)
    return require_product(db, product_id)


@router.get("/products/by-barcode/{barcode}", response_model=ProductResponse)
def product_by_barcode(
    barcode: str,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    product = get_product_by_barcode(db, barcode)
    if not product:
        raise not_found("Barcode not found", barcode=barcode)
    return product


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return require_product(db, product_id)


@router.put("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    require_product(db, product_id)
    updates = payload.model_dump(exclude_unset=True)
    _require_supplier(db, updates.get("supplier_id"))
    if not updates:
        return require_product(db, product_id)

    assignments = ", ".join(f"{column} = :{column}" for column in updates)
    try:
        db.execute(
            text(f"UPDATE products SET {assignments}, updated_at = :now WHERE id = :id"),
            {**updates, "now": utcnow(), "id": product_id},
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise conflict("Failed to update product", reason=str(exc.orig))
    return require_product(db, product_id)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: str, db: Session = Depends(get_db), _: dict = Depends(require_admin)):
    require_product(db, product_id)
    history = fetch_one(
        db,
        "SELECT COUNT(*) AS count FROM stock_movements WHERE product_id = :id",
        {"id": product_id},
    )
    if int(history["count"]) > 0:
        raise conflict("Product has stock history and cannot be deleted", product_id=product_id)
    db.execute(text("DELETE FROM products WHERE id = :id"), {"id": product_id})
    db.commit()
    logger.info("Product %s deleted", product_id)


@router.post("/products/{product_id}/stock", response_model=ProductResponse)
def add_stock(
    product_id: str,
    payload: StockIncreaseRequest,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    require_product(db, product_id)
    increment_stock(
        db,
        product_id,
        payload.qty,
        MOVEMENT_RESTOCK,
        user_id=user["id"],
        reason=payload.reason or "Stock added",
    )
    db.commit()
    updated = require_product(db, product_id)
    logger.info("Stock of %s increased by %s to %s", updated["name"], payload.qty, updated["stock"])
    return updated


@router.get("/inventory/alerts/low-stock", response_model=list[LowStockItem])
def low_stock_alerts(db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return low_stock_products(db, settings.low_stock_threshold)


@router.get("/store/products", response_model=list[StorefrontProduct])
def storefront_products(q: str | None = None, category: str | None = None, db: Session = Depends(get_db)):
    clauses = []
    params = {}
    if q:
        clauses.append("LOWER(name) LIKE :q")
        params["q"] = f"%{q.lower()}%"
    if category:
        clauses.append("category = :category")
        params["category"] = category
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = fetch_all(
        db,
        f"""
        SELECT id, name, category, description, retail_price, image_url, stock
        FROM products
        {where}
        ORDER BY name ASC
        """,
        params,
    )
    return [StorefrontProduct(**row, in_stock=int(row["stock"]) > 0) for row in rows]


@router.get("/store/products/{product_id}", response_model=StorefrontProduct)
def storefront_product(product_id: str, db: Session = Depends(get_db)):
    product = require_product(db, product_id)
    return StorefrontProduct(**product, in_stock=int(product["stock"]) > 0)


@router.get("/suppliers", response_model=list[SupplierResponse])
def list_suppliers(db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return fetch_all(db, "SELECT id, name, phone, address, notes, created_at FROM suppliers ORDER BY name ASC")


@router.post("/suppliers", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
def create_supplier(payload: SupplierCreate, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    supplier_id = new_id()
    db.execute(
        text(
            """
            INSERT INTO suppliers (id, name, phone, address, notes, created_at)
            VALUES (:id, :name, :phone, :address, :notes, :created_at)
            """
        ),
        {**payload.model_dump(), "id": supplier_id, "created_at": utcnow()},
    )
    db.commit()
    return _require_supplier_row(db, supplier_id)


@router.put("/suppliers/{supplier_id}", response_model=SupplierResponse)
def update_supplier(
    supplier_id: str,
    payload: SupplierCreate,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    _require_supplier_row(db, supplier_id)
    db.execute(
        text(
            """
            UPDATE suppliers
            SET name = :name, phone = :phone, address = :address, notes = :notes
            WHERE id = :id
            """
        ),
        {**payload.model_dump(), "id": supplier_id},
    )
    db.commit()
    return _require_supplier_row(db, supplier_id)


@router.delete("/suppliers/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(supplier_id: str, db: Session = Depends(get_db), _: dict = Depends(require_admin)):
    _require_supplier_row(db, supplier_id)
    db.execute(text("UPDATE products SET supplier_id = NULL WHERE supplier_id = :id"), {"id": supplier_id})
    db.execute(text("DELETE FROM suppliers WHERE id = :id"), {"id": supplier_id})
    db.commit()


def _require_supplier_row(db: Session, supplier_id: str) -> dict:
    supplier = fetch_one(
        db,
        "SELECT id, name, phone, address, notes, created_at FROM suppliers WHERE id = :id",
        {"id": supplier_id},
    )
    if not supplier:
        raise not_found("Supplier not found", supplier_id=supplier_id)
    return supplier
