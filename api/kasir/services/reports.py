from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from kasir.db.queries import day_range, fetch_all, fetch_one


def dashboard_summary(db: Session) -> dict[str, int]:
    metrics = fetch_one(
        db,
        """
        WITH invested AS (
          SELECT COALESCE(SUM(stock * buy_price), 0) AS amount
          FROM products
        ),
        sales_gross AS (
          SELECT COALESCE(SUM(total), 0) AS amount
          FROM sales_transactions
        ),
        cogs AS (
          SELECT COALESCE(SUM(quantity * buy_price_at_sale), 0) AS amount
          FROM sales_transaction_items
        ),
        receivables AS (
          SELECT COALESCE(SUM(remaining_amount), 0) AS amount
          FROM installments
          WHERE status = 'unpaid'
        )
        SELECT
          invested.amount AS invested_amount,
          sales_gross.amount AS gross_sales,
          cogs.amount AS cost_of_goods_sold,
          (sales_gross.amount - cogs.amount) AS profit,
          receivables.amount AS outstanding_receivables
        FROM invested, sales_gross, cogs, receivables
        """,
    )
    return {key: int(value) for key, value in metrics.items()}


def sales_report(db: Session, start: date, end: date) -> list[dict[str, Any]]:
    lower, upper = day_range(start, end)
    transactions = fetch_all(
        db,
        """
        SELECT id, display_id, created_at, customer_name_cache, total, discount, profit
        FROM sales_transactions
        WHERE created_at >= :start AND created_at < :end
        ORDER BY created_at DESC
        """,
        {"start": lower, "end": upper},
    )
    if not transactions:
        return []

    params = {f"id_{i}": tx["id"] for i, tx in enumerate(transactions)}
    placeholders = ", ".join(f":{key}" for key in params)
    items_by_tx: dict[str, list[dict[str, Any]]] = {}
    for item in fetch_all(
        db,
        f"""
        SELECT transaction_id, product_name, quantity, buy_price_at_sale, sale_price_at_sale
        FROM sales_transaction_items
        WHERE transaction_id IN ({placeholders})
        ORDER BY product_name ASC
        """,
        params,
    ):
        item["profit"] = (int(item["sale_price_at_sale"]) - int(item["buy_price_at_sale"])) * int(item["quantity"])
        items_by_tx.setdefault(item.pop("transaction_id"), []).append(item)

    report = []
    for tx in transactions:
        items = items_by_tx.get(tx["id"], [])
        tx["items"] = items
        tx["total_profit"] = int(tx.pop("profit"))
        report.append(tx)
    return report


def service_report(db: Session, start: date, end: date) -> dict[str, Any]:
    lower, upper = day_range(start, end)
    transactions = fetch_all(
        db,
        """
        SELECT id, display_id, created_at, service_entry_id, customer_name_cache,
               description, total_amount, cost, profit
        FROM service_transactions
        WHERE created_at >= :start AND created_at < :end
        ORDER BY created_at DESC
        """,
        {"start": lower, "end": upper},
    )
    revenue = sum(int(tx["total_amount"]) for tx in transactions)
    cost = sum(int(tx["cost"]) for tx in transactions)
    return {
        "total_revenue": revenue,
        "total_cost": cost,
        "total_profit": revenue - cost,
        "total_transactions": len(transactions),
        "transactions": transactions,
    }


def today_report(db: Session, today: date) -> dict[str, int]:
    lower, upper = day_range(today, today)
    params = {"start": lower, "end": upper}
    sales = fetch_one(
        db,
        """
        SELECT COUNT(*) AS count, COALESCE(SUM(total), 0) AS revenue, COALESCE(SUM(profit), 0) AS profit
        FROM sales_transactions
        WHERE created_at >= :start AND created_at < :end
        """,
        params,
    )
    services = fetch_one(
        db,
        """
        SELECT COUNT(*) AS count, COALESCE(SUM(total_amount), 0) AS revenue, COALESCE(SUM(profit), 0) AS profit
        FROM service_transactions
        WHERE created_at >= :start AND created_at < :end
        """,
        params,
    )
    collected = fetch_one(
        db,
        """
        SELECT COALESCE(SUM(amount), 0) AS amount
        FROM installment_payments
        WHERE paid_at >= :start AND paid_at < :end
        """,
        params,
    )
    return {
        "sales_count": int(sales["count"]),
        "sales_revenue": int(sales["revenue"]),
        "sales_profit": int(sales["profit"]),
        "service_count": int(services["count"]),
        "service_revenue": int(services["revenue"]),
        "service_profit": int(services["profit"]),
        "installment_payments": int(collected["amount"]),
    }


def installment_report(db: Session) -> dict[str, Any]:
    rows = fetch_all(
        db,
        """
        SELECT status, COUNT(*) AS count, COALESCE(SUM(total_amount), 0) AS total,
               COALESCE(SUM(paid_amount), 0) AS paid, COALESCE(SUM(remaining_amount), 0) AS remaining
        FROM installments
        GROUP BY status
        """,
    )
    by_status = {row["status"]: row for row in rows}
    unpaid = by_status.get("unpaid", {})
    paid = by_status.get("paid", {})
    return {
        "open_count": int(unpaid.get("count", 0)),
        "outstanding": int(unpaid.get("remaining", 0)),
        "settled_count": int(paid.get("count", 0)),
        "collected": int(unpaid.get("paid", 0)) + int(paid.get("paid", 0)),
    }
