# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Domain types for SMB Dashboard.

This module defines the typed dataclasses shared by every layer of the
application:

- stored records (Product, Expense, Customer, Sale, Goal, FinancialAlert),
- input payloads used to create records (NewProduct, NewExpense, ...),
- the structured results returned by the AI insight service
  (AlertDraft, AIAnalysis and its parts),
- closed enumerations for goal types, alert severities and stock status.

Records are immutable (frozen dataclasses). The record store replaces a
record when one of its fields changes (e.g. a customer's total_spent).

Input payloads validate themselves on construction and raise
``ValidationError`` when a required field is missing or a numeric value is
out of range, so that no invalid record ever reaches the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class ValidationError(ValueError):
    """Raised when an input payload is incomplete or out of range."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class GoalType(str, Enum):
    """Metric tracked by a goal."""

    REVENUE = "revenue"
    PROFIT = "profit"
    CUSTOMERS = "customers"

    @classmethod
    def parse(cls, value: str | GoalType) -> GoalType:
        """Return the member matching ``value`` (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown goal type {value!r}, expected one of: {allowed}."
            ) from exc


class AlertSeverity(str, Enum):
    """Severity of a financial alert."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @classmethod
    def parse(cls, value: str | AlertSeverity) -> AlertSeverity:
        """Return the member matching ``value`` (case-insensitive)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            allowed = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown alert severity {value!r}, expected one of: {allowed}."
            ) from exc


class StockStatus(str, Enum):
    """Stock classification of a non-recurring product."""

    OUT_OF_STOCK = "out_of_stock"
    LOW_STOCK = "low_stock"
    IN_STOCK = "in_stock"

    @property
    def label(self) -> str:
        return {
            StockStatus.OUT_OF_STOCK: "Out of Stock",
            StockStatus.LOW_STOCK: "Low Stock",
            StockStatus.IN_STOCK: "In Stock",
        }[self]


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Product:
    """
    Product or service offered by the business.

    ``quantity`` is the stock on hand. For recurring products (subscriptions)
    it carries no meaning and such products are excluded from stock status
    and inventory valuation.
    """

    id: str
    name: str
    sku: str
    quantity: int
    price: float
    is_recurring: bool = False


@dataclass(frozen=True)
class Expense:
    id: str
    date: date
    category: str
    description: str
    amount: float


@dataclass(frozen=True)
class Customer:
    """
    Customer record.

    ``total_spent`` is a denormalized running total: it is incremented each
    time a sale for this customer is added and is not decremented when a sale
    is deleted.
    """

    id: str
    name: str
    email: str
    total_spent: float
    join_date: date


@dataclass(frozen=True)
class Sale:
    """
    Sale record.

    ``product_name`` and ``customer_name`` are snapshots taken when the sale
    was recorded. ``total_price`` is computed by the caller and is not tied
    to the current product price.
    """

    id: str
    date: date
    product_id: str
    product_name: str
    customer_id: str
    customer_name: str
    quantity: int
    total_price: float


@dataclass(frozen=True)
class Goal:
    """Business goal. ``current`` is always derived from the other records."""

    id: str
    title: str
    type: GoalType
    target: float
    current: float
    deadline: date


@dataclass(frozen=True)
class FinancialAlert:
    id: str
    title: str
    message: str
    severity: AlertSeverity
    timestamp: datetime


# ---------------------------------------------------------------------------
# Input payloads
# ---------------------------------------------------------------------------


def _require_text(payload: str, **values: str) -> None:
    for name, value in values.items():
        if value is None or not str(value).strip():
            raise ValidationError(f"{payload}: field '{name}' is required.")


def _require_non_negative(payload: str, **values: float) -> None:
    for name, value in values.items():
        if value is None or value < 0:
            raise ValidationError(
                f"{payload}: field '{name}' must be a non-negative number."
            )


@dataclass(frozen=True)
class NewProduct:
    name: str
    sku: str
    quantity: int
    price: float
    is_recurring: bool = False

    def __post_init__(self) -> None:
        _require_text("Product", name=self.name, sku=self.sku)
        _require_non_negative("Product", quantity=self.quantity, price=self.price)


@dataclass(frozen=True)
class NewExpense:
    date: date
    category: str
    description: str
    amount: float

    def __post_init__(self) -> None:
        if self.date is None:
            raise ValidationError("Expense: field 'date' is required.")
        _require_text(
            "Expense", category=self.category, description=self.description
        )
        _require_non_negative("Expense", amount=self.amount)


@dataclass(frozen=True)
class NewSale:
    date: date
    product_id: str
    product_name: str
    customer_id: str
    customer_name: str
    quantity: int
    total_price: float

    def __post_init__(self) -> None:
        if self.date is None:
            raise ValidationError("Sale: field 'date' is required.")
        _require_text(
            "Sale", product_id=self.product_id, customer_id=self.customer_id
        )
        if self.quantity is None or self.quantity < 1:
            raise ValidationError("Sale: field 'quantity' must be at least 1.")
        _require_non_negative("Sale", total_price=self.total_price)


@dataclass(frozen=True)
class NewCustomer:
    name: str
    email: str

    def __post_init__(self) -> None:
        _require_text("Customer", name=self.name, email=self.email)


@dataclass(frozen=True)
class NewGoal:
    title: str
    type: GoalType
    target: float
    deadline: date

    def __post_init__(self) -> None:
        _require_text("Goal", title=self.title)
        # Accept plain strings at the boundary, store the enum member.
        try:
            goal_type = GoalType.parse(self.type)
        except ValueError as exc:
            raise ValidationError(f"Goal: {exc}") from exc
        object.__setattr__(self, "type", goal_type)
        if self.target is None or self.target <= 0:
            raise ValidationError("Goal: field 'target' must be positive.")
        if self.deadline is None:
            raise ValidationError("Goal: field 'deadline' is required.")


# ---------------------------------------------------------------------------
# AI insight results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AlertDraft:
    """Alert as returned by the insight service, before id/timestamp stamping."""

    title: str
    message: str
    severity: AlertSeverity


@dataclass(frozen=True)
class ForecastPoint:
    month: str
    revenue: float
    expenses: float
    profit: float


@dataclass(frozen=True)
class KpiHistoryPoint:
    month: str
    value: float


@dataclass(frozen=True)
class KpiAnalysis:
    kpi: str
    value: str
    analysis: str
    history: tuple[KpiHistoryPoint, ...] = ()


@dataclass(frozen=True)
class AIAnalysis:
    """Structured forecast and strategic overview produced by the AI service."""

    forecast: tuple[ForecastPoint, ...]
    trends: tuple[str, ...]
    recommendations: tuple[str, ...]
    key_opportunities: tuple[str, ...]
    potential_risks: tuple[str, ...]
    kpi_analysis: tuple[KpiAnalysis, ...]


@dataclass(frozen=True)
class ForecastAssumptions:
    """User-provided analysis window and free-text strategic notes."""

    start: date
    end: date
    notes: str = ""

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError(
                "Forecast assumptions: end date cannot be before start date."
            )


@dataclass(frozen=True)
class FinancialTotals:
    """Aggregate totals over the current sales and expenses."""

    total_revenue: float
    total_expenses: float
    net_profit: float


@dataclass(frozen=True)
class StoreSnapshot:
    """Immutable view of every collection held by the record store."""

    products: tuple[Product, ...] = ()
    sales: tuple[Sale, ...] = ()
    expenses: tuple[Expense, ...] = ()
    customers: tuple[Customer, ...] = ()
    goals: tuple[Goal, ...] = ()
    alerts: tuple[FinancialAlert, ...] = field(default_factory=tuple)
