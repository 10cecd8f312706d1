# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SMB Dashboard.

This module contains the helpers that sit between the record store /
metrics engine and a presentation layer (CLI tables, CSV exports, charts):

- search & filter helpers for each list (inventory, sales, expenses,
  customers), matching the dashboard's search boxes and filters,
- grouping of a list by calendar month, newest month first,
- flat export rows with the column sets used for CSV exports,
- DataFrame builders used for tabular display.

The metrics themselves are computed by ``engine``. This module only
selects, orders and reshapes records for display or export.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any, Optional

import pandas as pd

from .engine import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    average_order_value,
    customer_sales,
    goal_progress_pct,
    inventory_line_value,
    monthly_totals,
    product_sales,
    stock_status,
)
from .models import (
    Customer,
    Expense,
    FinancialAlert,
    FinancialTotals,
    Goal,
    Product,
    Sale,
    StockStatus,
)
from .periods import Period, filter_by_period

STATUS_FILTERS: tuple[str, ...] = ("all", "in_stock", "low_stock", "out_of_stock")

_MONTH_NAMES: tuple[str, ...] = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def _matches(term: Optional[str], *values: str) -> bool:
    """Case-insensitive substring match of ``term`` in any of ``values``."""
    if not term:
        return True
    needle = term.lower()
    return any(needle in str(v).lower() for v in values)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def filter_products(
    products: Iterable[Product],
    search: Optional[str] = None,
    status: str = "all",
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> list[Product]:
    """
    Filter products by name/SKU search term and stock status.

    ``status`` is one of "all", "in_stock", "low_stock", "out_of_stock".
    Status filters apply to the raw quantity, like the inventory screen
    does, so recurring products match on their nominal quantity.

    Raises:
        ValueError: if ``status`` is unknown.
    """
    if status not in STATUS_FILTERS:
        raise ValueError(
            f"Unknown stock status filter {status!r}, expected one of: "
            + ", ".join(STATUS_FILTERS)
        )

    def _status_match(p: Product) -> bool:
        if status == "all":
            return True
        if status == "in_stock":
            return p.quantity >= low_stock_threshold
        if status == "low_stock":
            return 0 < p.quantity < low_stock_threshold
        return p.quantity == 0

    return [
        p for p in products if _matches(search, p.name, p.sku) and _status_match(p)
    ]


def filter_sales(
    sales: Iterable[Sale],
    search: Optional[str] = None,
    period: Optional[Period] = None,
) -> list[Sale]:
    """Filter sales by customer/product name and an optional date window."""
    selected = [s for s in sales if _matches(search, s.customer_name, s.product_name)]
    if period is not None:
        selected = filter_by_period(selected, period)
    return selected


def filter_expenses(
    expenses: Iterable[Expense],
    search: Optional[str] = None,
    category: Optional[str] = None,
) -> list[Expense]:
    """Filter expenses by description and exact category ("all" = any)."""
    return [
        e
        for e in expenses
        if _matches(search, e.description)
        and (not category or category == "all" or e.category == category)
    ]


def filter_customers(
    customers: Iterable[Customer], search: Optional[str] = None
) -> list[Customer]:
    """Filter customers by name or email."""
    return [c for c in customers if _matches(search, c.name, c.email)]


def expense_categories(expenses: Iterable[Expense]) -> list[str]:
    """Distinct expense categories, in order of first appearance."""
    return list(dict.fromkeys(e.category for e in expenses))


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def group_by_month(records: Iterable[Any], date_field: str = "date") -> dict[str, list]:
    """
    Group records by calendar month, newest month first.

    Keys are labels such as "July 2024". Records keep their relative order
    inside each month. Ordering is based on the (year, month) pair rather
    than on the label.
    """
    buckets: dict[tuple[int, int], list] = defaultdict(list)
    for r in records:
        d: date = getattr(r, date_field)
        buckets[(d.year, d.month)].append(r)

    return {
        f"{_MONTH_NAMES[month - 1]} {year}": buckets[(year, month)]
        for year, month in sorted(buckets, reverse=True)
    }


# ---------------------------------------------------------------------------
# Export rows
# ---------------------------------------------------------------------------


def _format_date(d: date) -> str:
    return d.isoformat()


def inventory_export_rows(products: Iterable[Product]) -> list[dict[str, Any]]:
    """Flat rows for an inventory export (Name, SKU, Price, ...)."""
    rows = []
    for p in products:
        value = inventory_line_value(p)
        rows.append(
            {
                "Name": p.name,
                "SKU": p.sku,
                "Price": p.price,
                "Quantity": p.quantity,
                "Value": "N/A" if value is None else f"{value:.2f}",
                "Recurring": "Yes" if p.is_recurring else "No",
            }
        )
    return rows


def sales_export_rows(sales: Iterable[Sale]) -> list[dict[str, Any]]:
    return [
        {
            "Date": _format_date(s.date),
            "Customer": s.customer_name,
            "Product": s.product_name,
            "Quantity": s.quantity,
            "TotalPrice": f"{s.total_price:.2f}",
        }
        for s in sales
    ]


def expenses_export_rows(expenses: Iterable[Expense]) -> list[dict[str, Any]]:
    return [
        {
            "Date": _format_date(e.date),
            "Category": e.category,
            "Description": e.description,
            "Amount": f"{e.amount:.2f}",
        }
        for e in expenses
    ]


def selection_export_name(prefix: str, today: date) -> str:
    """File name used when exporting a selection, e.g. 'sales_selection_2024-07-31'."""
    return f"{prefix}_selection_{today.isoformat()}"


def select_by_ids(records: Iterable[Any], ids: Iterable[str]) -> list[Any]:
    """Records whose id is in ``ids``, in their original order."""
    wanted = set(ids)
    return [r for r in records if r.id in wanted]


# ---------------------------------------------------------------------------
# DataFrames for display
# ---------------------------------------------------------------------------


def products_to_dataframe(
    products: Sequence[Product],
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
    decimals: int = 2,
) -> pd.DataFrame:
    """
    Inventory table: one row per product with its status and stock value.

    Recurring products show "Recurring" as status and no value.
    """
    columns = ["id", "name", "sku", "quantity", "price", "status", "value"]
    if not products:
        return pd.DataFrame(columns=columns)

    rows = []
    for p in products:
        status: Optional[StockStatus] = stock_status(p, low_stock_threshold)
        value = inventory_line_value(p)
        rows.append(
            {
                "id": p.id,
                "name": p.name,
                "sku": p.sku,
                "quantity": "N/A" if p.is_recurring else p.quantity,
                "price": round(p.price, decimals),
                "status": "Recurring" if status is None else status.label,
                "value": "N/A" if value is None else round(value, decimals),
            }
        )
    return pd.DataFrame(rows, columns=columns)


def customers_to_dataframe(
    customers: Sequence[Customer],
    sales: Sequence[Sale],
    decimals: int = 2,
) -> pd.DataFrame:
    """Customer table with total spent, order count and average order value."""
    columns = [
        "id",
        "name",
        "email",
        "join_date",
        "orders",
        "total_spent",
        "average_order_value",
    ]
    if not customers:
        return pd.DataFrame(columns=columns)

    rows = []
    for c in customers:
        orders = sum(1 for s in sales if s.customer_id == c.id)
        rows.append(
            {
                "id": c.id,
                "name": c.name,
                "email": c.email,
                "join_date": c.join_date.isoformat(),
                "orders": orders,
                "total_spent": round(c.total_spent, decimals),
                "average_order_value": round(average_order_value(c, sales), decimals),
            }
        )
    return pd.DataFrame(rows, columns=columns)


def product_history_to_dataframe(
    product: Product, sales: Iterable[Sale], decimals: int = 2
) -> pd.DataFrame:
    """Sales history of one product, newest first (date, customer, quantity, total)."""
    columns = ["date", "customer", "quantity", "total"]
    rows = [
        {
            "date": s.date.isoformat(),
            "customer": s.customer_name,
            "quantity": s.quantity,
            "total": round(s.total_price, decimals),
        }
        for s in product_sales(product.id, sales)
    ]
    return pd.DataFrame(rows, columns=columns)


def customer_history_to_dataframe(
    customer: Customer, sales: Iterable[Sale], decimals: int = 2
) -> pd.DataFrame:
    """Purchase history of one customer, newest first."""
    columns = ["date", "product", "total"]
    rows = [
        {
            "date": s.date.isoformat(),
            "product": f"{s.product_name} (x{s.quantity})",
            "total": round(s.total_price, decimals),
        }
        for s in customer_sales(customer.id, sales)
    ]
    return pd.DataFrame(rows, columns=columns)


def goals_to_dataframe(goals: Sequence[Goal], decimals: int = 2) -> pd.DataFrame:
    """Goal table with current value and clamped progress percentage."""
    columns = ["id", "title", "type", "current", "target", "progress_pct", "deadline"]
    if not goals:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "id": g.id,
            "title": g.title,
            "type": g.type.value,
            "current": round(g.current, decimals),
            "target": round(g.target, decimals),
            "progress_pct": round(goal_progress_pct(g.current, g.target), 1),
            "deadline": g.deadline.isoformat(),
        }
        for g in goals
    ]
    return pd.DataFrame(rows, columns=columns)


def alerts_to_dataframe(alerts: Sequence[FinancialAlert]) -> pd.DataFrame:
    columns = ["timestamp", "severity", "title", "message"]
    if not alerts:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(
        [
            {
                "timestamp": a.timestamp.isoformat(timespec="seconds"),
                "severity": a.severity.value,
                "title": a.title,
                "message": a.message,
            }
            for a in alerts
        ],
        columns=columns,
    )


def kpis_to_dataframe(
    totals: FinancialTotals,
    stock_value: float,
    customer_count: int,
    decimals: int = 2,
) -> pd.DataFrame:
    """Headline KPI cards as a two-column (kpi, value) table."""
    return pd.DataFrame(
        [
            {"kpi": "Total revenue", "value": round(totals.total_revenue, decimals)},
            {"kpi": "Total expenses", "value": round(totals.total_expenses, decimals)},
            {"kpi": "Net profit", "value": round(totals.net_profit, decimals)},
            {"kpi": "Inventory value", "value": round(stock_value, decimals)},
            {"kpi": "Customers", "value": customer_count},
        ],
        columns=["kpi", "value"],
    )


def revenue_expense_frame(
    sales: Iterable[Sale], expenses: Iterable[Expense]
) -> pd.DataFrame:
    """
    Monthly revenue vs expenses, one row per month present in either list.

    Months missing on one side are filled with 0. Columns: period, name,
    revenue, expenses, profit (chronological order).
    """
    columns = ["period", "name", "revenue", "expenses", "profit"]
    revenue = monthly_totals(sales, "total_price").rename(columns={"value": "revenue"})
    spent = monthly_totals(expenses, "amount").rename(columns={"value": "expenses"})
    if revenue.empty and spent.empty:
        return pd.DataFrame(columns=columns)
    if revenue.empty:
        merged = spent.assign(revenue=0.0)
    elif spent.empty:
        merged = revenue.assign(expenses=0.0)
    else:
        merged = pd.merge(revenue, spent, on=["period", "name"], how="outer")
    merged[["revenue", "expenses"]] = (
        merged[["revenue", "expenses"]].astype(float).fillna(0.0)
    )
    merged = merged.sort_values("period").reset_index(drop=True)
    merged["profit"] = merged["revenue"] - merged["expenses"]
    return merged[columns]


def chart_points(series: pd.DataFrame, value_column: str) -> list[dict[str, Any]]:
    """
    Convert an engine time series into ``{"name", "value"}`` points.

    The engine's DataFrames carry a ``period`` column for ordering; chart
    consumers only need the label and the value.
    """
    return [
        {"name": name, "value": float(value)}
        for name, value in zip(series["name"], series[value_column])
    ]


def round_series(series: pd.DataFrame, decimals: int) -> pd.DataFrame:
    """Copy of an engine time series with numeric columns rounded and no
    ``period`` column, ready for display."""
    out = series.drop(columns=["period"], errors="ignore").copy()
    numeric_cols = out.select_dtypes(include="number").columns
    out[numeric_cols] = out[numeric_cols].round(decimals)
    return out

