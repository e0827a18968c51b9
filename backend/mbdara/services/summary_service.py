# Overview: Service-layer operations for summary analytics; aggregates revenue, profit and expenses.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func

from mbdara.extensions import db
from mbdara.models import Transaction, TransactionItem, Product, Expense
from mbdara.money import as_json_number, quantize_cents, to_decimal

TOP_PRODUCTS_LIMIT = 5


def _dec(value) -> Decimal:
    return to_decimal(value) if value is not None else Decimal("0")


def _day_key(value) -> str:
    # SQLite returns DATE() as text, PostgreSQL as a date
    if hasattr(value, "isoformat"):
        return value.isoformat()[:10]
    return str(value)[:10]


def _transaction_filters(org_id: int, start: datetime | None, end: datetime | None) -> list:
    filters = [Transaction.org_id == org_id]
    if start is not None:
        filters.append(Transaction.created_at >= start)
    if end is not None:
        filters.append(Transaction.created_at <= end)
    return filters


def _expense_filters(org_id: int, start: datetime | None, end: datetime | None) -> list:
    filters = [Expense.org_id == org_id]
    if start is not None:
        filters.append(Expense.date >= start)
    if end is not None:
        filters.append(Expense.date <= end)
    return filters


def _product_performance(txn_filters: list, *, worst_first: bool) -> list[dict]:
    revenue = func.coalesce(func.sum(TransactionItem.price), 0)
    query = (
        db.session.query(
            Product.id.label("product_id"),
            Product.name.label("product_name"),
            revenue.label("total_revenue"),
            func.coalesce(func.sum(TransactionItem.quantity), 0).label("quantity_sold"),
        )
        .select_from(TransactionItem)
        .join(Transaction, TransactionItem.transaction_id == Transaction.id)
        .join(Product, TransactionItem.product_id == Product.id)
        .filter(*txn_filters)
        .filter(Product.org_id == Transaction.org_id)
        .group_by(Product.id, Product.name)
    )
    if worst_first:
        query = query.having(revenue > 0).order_by(revenue.asc(), Product.id.asc())
    else:
        query = query.order_by(revenue.desc(), Product.id.asc())

    return [
        {
            "product_id": row.product_id,
            "product_name": row.product_name,
            "total_revenue": as_json_number(quantize_cents(_dec(row.total_revenue))),
            "quantity_sold": int(row.quantity_sold or 0),
        }
        for row in query.limit(TOP_PRODUCTS_LIMIT).all()
    ]


def summary(*, org_id: int, start: datetime | None = None, end: datetime | None = None) -> dict:
    """
    Aggregated financial metrics for one organization.

    - totals: revenue (sum of total_amount), profit, transaction count,
      average transaction, expenses
    - chart_data: per-day revenue/profit/expenses, ascending, including
      days that only have expenses
    - top_5_products by line revenue, underperforming_products (bottom 5
      with revenue > 0)
    """
    txn_filters = _transaction_filters(org_id, start, end)
    exp_filters = _expense_filters(org_id, start, end)

    stats = db.session.query(
        func.coalesce(func.sum(Transaction.total_amount), 0).label("revenue"),
        func.coalesce(func.sum(Transaction.profit), 0).label("profit"),
        func.count(Transaction.id).label("count"),
    ).filter(*txn_filters).one()

    total_revenue = quantize_cents(_dec(stats.revenue))
    total_profit = quantize_cents(_dec(stats.profit))
    transaction_count = int(stats.count or 0)
    average = quantize_cents(total_revenue / transaction_count) if transaction_count else Decimal("0")

    total_expenses = quantize_cents(_dec(
        db.session.query(func.coalesce(func.sum(Expense.amount), 0)).filter(*exp_filters).scalar()
    ))

    txn_day = func.date(Transaction.created_at)
    daily_sales = (
        db.session.query(
            txn_day.label("day"),
            func.coalesce(func.sum(Transaction.total_amount), 0).label("revenue"),
            func.coalesce(func.sum(Transaction.profit), 0).label("profit"),
        )
        .filter(*txn_filters)
        .group_by(txn_day)
        .all()
    )

    exp_day = func.date(Expense.date)
    daily_expenses = (
        db.session.query(
            exp_day.label("day"),
            func.coalesce(func.sum(Expense.amount), 0).label("expenses"),
        )
        .filter(*exp_filters)
        .group_by(exp_day)
        .all()
    )

    chart: dict[str, dict] = {}
    for row in daily_sales:
        key = _day_key(row.day)
        chart[key] = {
            "date": key,
            "revenue": quantize_cents(_dec(row.revenue)),
            "profit": quantize_cents(_dec(row.profit)),
            "expenses": Decimal("0"),
        }
    for row in daily_expenses:
        key = _day_key(row.day)
        entry = chart.setdefault(key, {
            "date": key,
            "revenue": Decimal("0"),
            "profit": Decimal("0"),
            "expenses": Decimal("0"),
        })
        entry["expenses"] = quantize_cents(_dec(row.expenses))

    chart_data = [
        {
            "date": entry["date"],
            "revenue": as_json_number(entry["revenue"]),
            "profit": as_json_number(entry["profit"]),
            "expenses": as_json_number(entry["expenses"]),
        }
        for _, entry in sorted(chart.items())
    ]

    return {
        "total_revenue": as_json_number(total_revenue),
        "total_profit": as_json_number(total_profit),
        "transaction_count": transaction_count,
        "average_transaction": as_json_number(average),
        "total_expenses": as_json_number(total_expenses),
        "chart_data": chart_data,
        "top_5_products": _product_performance(txn_filters, worst_first=False),
        "underperforming_products": _product_performance(txn_filters, worst_first=True),
    }
