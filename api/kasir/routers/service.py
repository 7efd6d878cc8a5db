from datetime import date

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from kasir.core.config import settings
from kasir.db.queries import day_range
from kasir.db.session import get_db
from kasir.routers.sales import operator_name
from kasir.schemas.service import (
    ServiceBillingRequest,
    ServiceEntryCreate,
    ServiceEntryResponse,
    ServiceEntryUpdate,
    ServiceRevisionRequest,
    ServiceStatus,
    ServiceStatusView,
    ServiceTransactionResponse,
)
from kasir.services import service_orders
from kasir.services.deps import get_current_user
from kasir.services.receipts import render_service_receipt
from kasir.services.shop_settings import load_settings

router = APIRouter(tags=["service"])


@router.get("/service-entries", response_model=list[ServiceEntryResponse])
def list_service_entries(
    status_filter: ServiceStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    return service_orders.list_entries(db, status_filter.value if status_filter else None)


@router.post("/service-entries", response_model=ServiceEntryResponse, status_code=status.HTTP_201_CREATED)
def create_service_entry(
    payload: ServiceEntryCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return service_orders.create_entry(db, payload, user)


@router.get("/service-entries/{entry_id}", response_model=ServiceEntryResponse)
def get_service_entry(entry_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return service_orders.require_entry(db, entry_id)


@router.put("/service-entries/{entry_id}", response_model=ServiceEntryResponse)
def update_service_entry(
    entry_id: str,
    payload: ServiceEntryUpdate,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    return service_orders.update_entry(db, entry_id, payload)


@router.delete("/service-entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_service_entry(entry_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    service_orders.delete_entry(db, entry_id)


@router.get("/public/service-status/{entry_id}", response_model=ServiceStatusView)
def service_status(entry_id: str, db: Session = Depends(get_db)):
    return service_orders.public_status(db, entry_id)


@router.post("/service-transactions", response_model=ServiceTransactionResponse)
def bill_service(
    payload: ServiceBillingRequest,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return service_orders.bill_service(db, payload, user)


@router.get("/service-transactions", response_model=list[ServiceTransactionResponse])
def list_service_transactions(
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
    _: dict = Depends(get_current_user),
):
    lower = upper = None
    if start or end:
        lower, upper = day_range(start or date.min, end or date.today())
    return service_orders.list_transactions(db, lower, upper)


@router.get("/service-transactions/{transaction_id}", response_model=ServiceTransactionResponse)
def get_service_transaction(transaction_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return service_orders.require_transaction(db, transaction_id)


@router.put("/service-transactions/{transaction_id}", response_model=ServiceTransactionResponse)
def revise_service_transaction(
    transaction_id: str,
    payload: ServiceRevisionRequest,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return service_orders.revise_service(db, transaction_id, payload, user)


@router.get("/service-transactions/{transaction_id}/receipt", response_class=PlainTextResponse)
def service_receipt(transaction_id: str, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    transaction = service_orders.require_transaction(db, transaction_id)
    entry = service_orders.require_entry(db, transaction["service_entry_id"])
    return render_service_receipt(
        transaction,
        entry,
        load_settings(db),
        settings.receipt_width,
        operator=operator_name(db, transaction["kasir_id"]),
    )
