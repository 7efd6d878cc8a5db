from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from kasir.core.config import settings
from kasir.db.queries import day_range, fetch_one
from kasir.db.session import get_db
from kasir.schemas.sales import CheckoutRequest, SaleListItem, SaleResponse
from kasir.services import checkout as checkout_service
from kasir.services.deps import get_current_user
from kasir.services.receipts import render_sale_receipt
from kasir.services.shop_settings import load_settings

router = APIRouter(prefix="/sales", tags=["sales"])


def operator_name(db: Session, user_id: str | None) -> str | None:
    if not user_id:
        return None
    row = fetch_one(db, "SELECT full_name FROM users WHERE id = :id", {"id": user_id})
    return row["full_name"] if row else None


@router.post("/checkout", response_model=SaleResponse)
def checkout(
    payload: CheckoutRequest,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return checkout_service.checkout(db, payload, user)


@router.get("", response_model=list[SaleListItem])
def list_sales(
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    lower = upper = None
    if start or end:
        lower, upper = day_range(start or date.min, end or date.today())
    return checkout_service.list_sales(db, lower, upper)


@router.get("/{sale_id}", response_model=SaleResponse)
def get_sale(sale_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return checkout_service.require_sale(db, sale_id)


@router.get("/{sale_id}/receipt", response_class=PlainTextResponse)
def sale_receipt(sale_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    sale = checkout_service.require_sale(db, sale_id)
    return render_sale_receipt(
        sale,
        load_settings(db),
        settings.receipt_width,
        operator=operator_name(db, sale["kasir_id"]),
    )
