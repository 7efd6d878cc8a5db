from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from kasir.core.errors import not_found
from kasir.db.queries import fetch_one
from kasir.db.session import get_db
from kasir.schemas.installments import (
    InstallmentDetail,
    InstallmentResponse,
    ManualInstallmentRequest,
    PaymentRequest,
)
from kasir.services import installments
from kasir.services.deps import get_current_user

router = APIRouter(prefix="/installments", tags=["installments"])


def _detail(db: Session, installment_id: str) -> dict:
    installment = installments.require_installment(db, installment_id)
    installment["payment_history"] = installments.payment_history(db, installment_id)
    return installment


@router.get("", response_model=list[InstallmentResponse])
def list_installments(
    status_filter: Literal["unpaid", "paid"] | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    return installments.list_installments(db, status=status_filter)


@router.post("", response_model=InstallmentDetail, status_code=status.HTTP_201_CREATED)
def create_manual_installment(
    payload: ManualInstallmentRequest,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    customer = fetch_one(db, "SELECT id, name FROM customers WHERE id = :id", {"id": payload.customer_id})
    if not customer:
        raise not_found("Customer not found", customer_id=payload.customer_id)
    installment = installments.create_manual_installment(db, customer, payload.amount, payload.description, user["id"])
    return _detail(db, installment["id"])


@router.get("/{installment_id}", response_model=InstallmentDetail)
def get_installment(installment_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return _detail(db, installment_id)


@router.post("/{installment_id}/payments", response_model=InstallmentDetail)
def add_payment(
    installment_id: str,
    payload: PaymentRequest,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    installments.add_payment(db, installment_id, payload.amount, user["id"], payload.note)
    return _detail(db, installment_id)
