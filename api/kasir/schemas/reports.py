from datetime import datetime

from pydantic import BaseModel


class DashboardSummary(BaseModel):
    invested_amount: int
    gross_sales: int
    cost_of_goods_sold: int
    profit: int
    outstanding_receivables: int


class SalesReportItem(BaseModel):
    product_name: str
    quantity: int
    buy_price_at_sale: int
    sale_price_at_sale: int
    profit: int


class SalesReportEntry(BaseModel):
    id: str
    display_id: str
    created_at: datetime
    customer_name_cache: str
    total: int
    discount: int
    items: list[SalesReportItem]
    total_profit: int


class ServiceReportEntry(BaseModel):
    id: str
    display_id: str
    created_at: datetime
    service_entry_id: str
    customer_name_cache: str
    description: str | None
    total_amount: int
    cost: int
    profit: int


class ServiceReport(BaseModel):
    total_revenue: int
    total_cost: int
    total_profit: int
    total_transactions: int
    transactions: list[ServiceReportEntry]


class TodayReport(BaseModel):
    sales_count: int
    sales_revenue: int
    sales_profit: int
    service_count: int
    service_revenue: int
    service_profit: int
    installment_payments: int


class InstallmentSummary(BaseModel):
    open_count: int
    outstanding: int
    settled_count: int
    collected: int
