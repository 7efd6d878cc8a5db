from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kasir.core.errors import validation_error
from kasir.db.queries import utcnow
from kasir.db.session import get_db
from kasir.schemas.reports import (
    DashboardSummary,
    InstallmentSummary,
    SalesReportEntry,
    ServiceReport,
    TodayReport,
)
from kasir.services import reports
from kasir.services.deps import get_current_user

router = APIRouter(tags=["reports"])


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise validation_error("End date is before start date", start=str(start), end=str(end))


@router.get("/dashboard/summary", response_model=DashboardSummary)
def dashboard_summary(db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return reports.dashboard_summary(db)


@router.get("/reports/sales", response_model=list[SalesReportEntry])
def sales_report(start: date, end: date, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    _check_range(start, end)
    return reports.sales_report(db, start, end)


@router.get("/reports/services", response_model=ServiceReport)
def service_report(start: date, end: date, db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    _check_range(start, end)
    return reports.service_report(db, start, end)


@router.get("/reports/today", response_model=TodayReport)
def today_report(db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return reports.today_report(db, utcnow().date())


@router.get("/reports/installments", response_model=InstallmentSummary)
def installment_report(db: Session = Depends(get_db), _: dict = Depends(get_current_user)):
    return reports.installment_report(db)
