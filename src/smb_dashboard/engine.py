# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core metrics engine for SMB Dashboard.

This module derives every aggregate and time-bucketed metric displayed by
the dashboard from the raw records held by the record store. All functions
are pure: they never mutate their inputs, hold no state and return the same
output for the same input, so they can be recomputed on every change.

The engine covers five groups of metrics:

1. Aggregate totals
   -----------------
   ``compute_totals(sales, expenses)`` returns total revenue, total
   expenses and net profit.

2. Monthly time series
   --------------------
   ``monthly_totals(records, value_field)`` buckets dated records by
   calendar month and sums one numeric field per bucket. Buckets are
   ordered chronologically using pandas monthly ``Period`` values, never the
   display label (labels such as "Jul 2024" do not sort chronologically as
   strings). Labels are built from a fixed month table so they do not
   depend on the process locale.

   ``compute_mrr(sales, products)`` restricts the buckets to sales of
   recurring products. ``compute_ltv_cac(...)`` combines revenue, marketing
   spend and customer joins per month into running LTV and per-month CAC.

3. Goal progress
   --------------
   Goals are projections: their ``current`` value is recomputed from the
   current sales, expenses and customer count every time it is read
   (``recompute_goals``). ``goal_progress_pct`` clamps the displayed
   progress at 100%.

4. Customer detail metrics
   ------------------------
   Purchase history, average order value and a reconciled total computed
   from the current sales.

5. Inventory valuation
   --------------------
   Stock status classification and inventory value for non-recurring
   products.

Division by zero is defined to yield 0.0 everywhere; no function raises or
propagates NaN for well-formed inputs.

Time-series results are returned as pandas DataFrames with a ``period``
column (``pandas.Period``, monthly), a ``name`` column (display label) and
one or more numeric columns, ready for chart consumption.
"""

from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Any, Optional

import pandas as pd

from .models import (
    Customer,
    Expense,
    FinancialTotals,
    Goal,
    GoalType,
    Product,
    Sale,
    StockStatus,
)

# Locale-independent month abbreviations used for display labels.
MONTH_ABBREVIATIONS: tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)

DEFAULT_MARKETING_CATEGORY = "Marketing"
DEFAULT_LOW_STOCK_THRESHOLD = 20

LTV_CAC_COLUMNS: list[str] = [
    "period",
    "name",
    "revenue",
    "marketing_spend",
    "new_customers",
    "cumulative_revenue",
    "cumulative_customers",
    "ltv",
    "cac",
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def month_label(period: pd.Period) -> str:
    """Return a display label such as 'Jul 2024' for a monthly period."""
    return f"{MONTH_ABBREVIATIONS[period.month - 1]} {period.year}"


def _safe_div(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return float(numerator) / float(denominator)


def _add_period(df: pd.DataFrame, date_column: str = "date") -> pd.DataFrame:
    """Return a copy of ``df`` with a monthly ``period`` column."""
    out = df.copy()
    out["period"] = pd.to_datetime(out[date_column]).dt.to_period("M")
    return out


def _insert_labels(df: pd.DataFrame) -> pd.DataFrame:
    """Insert the ``name`` display label right after the ``period`` column."""
    out = df.copy()
    out.insert(1, "name", [month_label(p) for p in out["period"]])
    return out


# ---------------------------------------------------------------------------
# Aggregate totals
# ---------------------------------------------------------------------------


def total_revenue(sales: Iterable[Sale]) -> float:
    return float(sum(s.total_price for s in sales))


def total_expenses(expenses: Iterable[Expense]) -> float:
    return float(sum(e.amount for e in expenses))


def compute_totals(
    sales: Iterable[Sale], expenses: Iterable[Expense]
) -> FinancialTotals:
    """Compute total revenue, total expenses and net profit.

    Args:
        sales: Current sales records.
        expenses: Current expense records.

    Returns:
        A FinancialTotals instance where
        ``net_profit = total_revenue - total_expenses``.
    """
    revenue = total_revenue(sales)
    spent = total_expenses(expenses)
    return FinancialTotals(
        total_revenue=revenue,
        total_expenses=spent,
        net_profit=revenue - spent,
    )


# ---------------------------------------------------------------------------
# Monthly time series
# ---------------------------------------------------------------------------


def monthly_totals(
    records: Iterable[Any],
    value_field: str,
    date_field: str = "date",
) -> pd.DataFrame:
    """Group dated records by calendar month and sum one numeric field.

    Args:
        records:
            Any objects exposing a date attribute (``date_field``) and a
            numeric attribute (``value_field``), e.g. Sale with
            ``total_price`` or Expense with ``amount``.
        value_field:
            Name of the numeric attribute to sum within each month.
        date_field:
            Name of the date attribute used for bucketing.

    Returns:
        A DataFrame with columns ``period``, ``name`` and ``value``, one row
        per month present in the input, in ascending chronological order
        regardless of the input order.
    """
    rows = [
        {"date": getattr(r, date_field), "value": float(getattr(r, value_field))}
        for r in records
    ]
    if not rows:
        return pd.DataFrame(columns=["period", "name", "value"])

    df = _add_period(pd.DataFrame(rows))
    grouped = df.groupby("period", sort=True)["value"].sum().reset_index()
    return _insert_labels(grouped)[["period", "name", "value"]]


def compute_mrr(sales: Iterable[Sale], products: Iterable[Product]) -> pd.DataFrame:
    """Monthly recurring revenue.

    Only sales whose product is flagged ``is_recurring`` contribute. Months
    without recurring sales are absent from the result (no zero filling).

    Returns:
        A DataFrame with columns ``period``, ``name`` and ``mrr`` in
        chronological order.
    """
    recurring_ids = {p.id for p in products if p.is_recurring}
    recurring_sales = [s for s in sales if s.product_id in recurring_ids]
    return monthly_totals(recurring_sales, "total_price").rename(
        columns={"value": "mrr"}
    )


def compute_ltv_cac(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    customers: Iterable[Customer],
    marketing_category: str = DEFAULT_MARKETING_CATEGORY,
) -> pd.DataFrame:
    """Compute running LTV and per-month CAC.

    Months are taken from the union of:
      - months with sales (revenue),
      - months with expenses in the marketing category (marketing spend),
      - months in which customers joined (new customers).

    For each month, in chronological order:
      - cumulative revenue and cumulative customer count are accumulated,
      - ``ltv = cumulative_revenue / cumulative_customers`` (0 if none yet),
      - ``cac = marketing_spend / new_customers`` for that month only
        (0 if no customer joined that month; not carried forward).

    Returns:
        A DataFrame with the columns listed in ``LTV_CAC_COLUMNS``.
    """
    rows: list[dict[str, Any]] = []
    for s in sales:
        rows.append(
            {
                "date": s.date,
                "revenue": float(s.total_price),
                "marketing_spend": 0.0,
                "new_customers": 0,
            }
        )
    for e in expenses:
        if e.category != marketing_category:
            continue
        rows.append(
            {
                "date": e.date,
                "revenue": 0.0,
                "marketing_spend": float(e.amount),
                "new_customers": 0,
            }
        )
    for c in customers:
        rows.append(
            {
                "date": c.join_date,
                "revenue": 0.0,
                "marketing_spend": 0.0,
                "new_customers": 1,
            }
        )

    if not rows:
        return pd.DataFrame(columns=LTV_CAC_COLUMNS)

    df = _add_period(pd.DataFrame(rows))
    monthly = (
        df.groupby("period", sort=True)[
            ["revenue", "marketing_spend", "new_customers"]
        ]
        .sum()
        .reset_index()
    )

    monthly["cumulative_revenue"] = monthly["revenue"].cumsum()
    monthly["cumulative_customers"] = monthly["new_customers"].cumsum()
    monthly["ltv"] = [
        _safe_div(rev, count)
        for rev, count in zip(
            monthly["cumulative_revenue"], monthly["cumulative_customers"]
        )
    ]
    monthly["cac"] = [
        _safe_div(spend, count)
        for spend, count in zip(monthly["marketing_spend"], monthly["new_customers"])
    ]

    return _insert_labels(monthly)[LTV_CAC_COLUMNS]


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


def compute_goal_current(
    goal_type: GoalType,
    totals: FinancialTotals,
    customer_count: int,
) -> float:
    """Return the current value tracked by a goal of the given type."""
    if goal_type is GoalType.REVENUE:
        return totals.total_revenue
    if goal_type is GoalType.PROFIT:
        return totals.total_revenue - totals.total_expenses
    if goal_type is GoalType.CUSTOMERS:
        return float(customer_count)
    raise ValueError(f"Unsupported goal type: {goal_type!r}")


def recompute_goals(
    goals: Iterable[Goal],
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    customers: Sequence[Customer],
) -> tuple[Goal, ...]:
    """Return copies of ``goals`` with ``current`` derived from the records."""
    totals = compute_totals(sales, expenses)
    customer_count = len(customers)
    return tuple(
        replace(g, current=compute_goal_current(g.type, totals, customer_count))
        for g in goals
    )


def goal_progress_pct(current: float, target: float) -> float:
    """Progress towards a target in percent, capped at 100.

    A non-positive target yields 0.0.
    """
    if target <= 0:
        return 0.0
    return min(current / target * 100.0, 100.0)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


def customer_sales(customer_id: str, sales: Iterable[Sale]) -> list[Sale]:
    """Purchase history of a customer, newest first."""
    return sorted(
        (s for s in sales if s.customer_id == customer_id),
        key=lambda s: s.date,
        reverse=True,
    )


def average_order_value(customer: Customer, sales: Iterable[Sale]) -> float:
    """Average order value: total_spent / number of the customer's sales.

    Uses the customer's stored ``total_spent``; returns 0.0 when the
    customer has no sales.
    """
    count = sum(1 for s in sales if s.customer_id == customer.id)
    return _safe_div(customer.total_spent, count)


def reconciled_total_spent(customer_id: str, sales: Iterable[Sale]) -> float:
    """Sum of ``total_price`` over the customer's current sales.

    Unlike the stored ``Customer.total_spent``, this value follows sale
    deletions.
    """
    return float(sum(s.total_price for s in sales if s.customer_id == customer_id))


# ---------------------------------------------------------------------------
# Products & inventory
# ---------------------------------------------------------------------------


def product_sales(product_id: str, sales: Iterable[Sale]) -> list[Sale]:
    """Sales history of a product, newest first."""
    return sorted(
        (s for s in sales if s.product_id == product_id),
        key=lambda s: s.date,
        reverse=True,
    )


def units_sold(product_id: str, sales: Iterable[Sale]) -> int:
    return int(sum(s.quantity for s in sales if s.product_id == product_id))


def stock_status(
    product: Product,
    low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD,
) -> Optional[StockStatus]:
    """Classify the stock level of a product.

    - quantity == 0                      → OUT_OF_STOCK
    - 0 < quantity < low_stock_threshold → LOW_STOCK
    - quantity >= low_stock_threshold    → IN_STOCK

    Recurring products are not classified and return None.
    """
    if product.is_recurring:
        return None
    if product.quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if product.quantity < low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def inventory_line_value(product: Product) -> Optional[float]:
    """Stock value of one product (quantity × price), None if recurring."""
    if product.is_recurring:
        return None
    return float(product.quantity) * float(product.price)


def inventory_value(products: Iterable[Product]) -> float:
    """Total stock value of the given (typically filtered) products.

    Recurring products contribute nothing.
    """
    total = 0.0
    for p in products:
        value = inventory_line_value(p)
        if value is not None:
            total += value
    return total
