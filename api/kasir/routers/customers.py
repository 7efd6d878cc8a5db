from fastapi import APIRouter, Depends, status
from sqlalchemy import text
from sqlalchemy.orm import Session

from kasir.core.errors import conflict, not_found
from kasir.db.queries import fetch_all, fetch_one, new_id, utcnow
from kasir.db.session import get_db
from kasir.schemas.customers import CustomerCreate, CustomerResponse
from kasir.schemas.installments import InstallmentResponse
from kasir.services import installments
from kasir.services.deps import get_current_user, require_admin

router = APIRouter(prefix="/customers", tags=["customers"])

CUSTOMER_COLUMNS = "id, name, phone, address, customer_type, created_at"


def _require_customer(db: Session, customer_id: str) -> dict:
    customer = fetch_one(db, f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE id = :id", {"id": customer_id})
    if not customer:
        raise not_found("Customer not found", customer_id=customer_id)
    return customer


@router.get("", response_model=list[CustomerResponse])
def list_customers(q: str | None = None, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    if q:
        return fetch_all(
            db,
            f"""
            SELECT {CUSTOMER_COLUMNS}
            FROM customers
            WHERE LOWER(name) LIKE :q OR phone LIKE :q
            ORDER BY name ASC
            """,
            {"q": f"%{q.lower()}%"},
        )
    return fetch_all(db, f"SELECT {CUSTOMER_COLUMNS} FROM customers ORDER BY name ASC")


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
def create_customer(payload: CustomerCreate, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    customer_id = new_id()
    db.execute(
        text(
            """
            INSERT INTO customers (id, name, phone, address, customer_type, created_at)
            VALUES (:id, :name, :phone, :address, :customer_type, :created_at)
            """
        ),
        {
            "id": customer_id,
            "name": payload.name,
            "phone": payload.phone,
            "address": payload.address,
            "customer_type": payload.customer_type.value,
            "created_at": utcnow(),
        },
    )
    db.commit()
    return _require_customer(db, customer_id)


@router.get("/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return _require_customer(db, customer_id)


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: str,
    payload: CustomerCreate,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    _require_customer(db, customer_id)
    db.execute(
        text(
            """
            UPDATE customers
            SET name = :name, phone = :phone, address = :address, customer_type = :customer_type
            WHERE id = :id
            """
        ),
        {
            "name": payload.name,
            "phone": payload.phone,
            "address": payload.address,
            "customer_type": payload.customer_type.value,
            "id": customer_id,
        },
    )
    db.commit()
    return _require_customer(db, customer_id)


@router.delete("/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_customer(customer_id: str, db: Session = Depends(get_db), _: dict = Depends(require_admin)):
    _require_customer(db, customer_id)
    open_debt = fetch_one(
        db,
        "SELECT COUNT(*) AS count FROM installments WHERE customer_id = :id AND status = 'unpaid'",
        {"id": customer_id},
    )
    if int(open_debt["count"]) > 0:
        raise conflict("Customer still has unpaid installments", customer_id=customer_id)
    services = fetch_one(
        db,
        "SELECT COUNT(*) AS count FROM service_entries WHERE customer_id = :id",
        {"id": customer_id},
    )
    if int(services["count"]) > 0:
        raise conflict("Customer has service history", customer_id=customer_id)
    db.execute(text("DELETE FROM customers WHERE id = :id"), {"id": customer_id})
    db.commit()


@router.get("/{customer_id}/installments", response_model=list[InstallmentResponse])
def customer_installments(customer_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    _require_customer(db, customer_id)
    return installments.list_installments(db, customer_id=customer_id)
