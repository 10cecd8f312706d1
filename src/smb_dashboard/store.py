# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
In-memory record store for SMB Dashboard.

The record store owns the authoritative collections of a running session:
products, sales, expenses, customers, goals and recent financial alerts.
Nothing is persisted; the store lives as long as the session that created
it.

Responsibilities
----------------
1) Mutations
   - ``add_product``, ``add_customer``, ``add_goal`` assign a fresh id and
     prepend the new record.
   - ``add_expense`` and ``add_sale`` assign a fresh id, insert the record in
     front, then re-sort the collection by date, newest first. The sort is
     stable, so a new record precedes older records sharing its date.
   - ``add_sale`` also increments the referenced customer's
     ``total_spent`` (no-op when the customer id is unknown).
   - ``delete_products``, ``delete_sales``, ``delete_expenses`` remove every
     record whose id is in the given collection. Deletions never cascade:
     deleting a sale leaves the customer's ``total_spent`` untouched.
   - ``push_alerts`` stamps alert drafts with an id and a timestamp and keeps
     only the most recent alerts (10 by default), newest first.

2) Reads
   - Collections are exposed as tuples so callers cannot mutate them.
   - ``goals`` are projected on every read: their ``current`` value is
     derived from the current sales, expenses and customers by the metrics
     engine, so it can never be stale.
   - ``snapshot()`` returns all collections at once as a StoreSnapshot.

3) Change notification
   - Listeners registered with ``subscribe`` are called with the name of the
     changed collection ("products", "sales", ...) once the mutation has
     been fully applied.

Design notes
------------
- Input payloads (NewProduct, NewSale, ...) validate themselves on
  construction; the store performs no further validation.
- All mutations are synchronous; there is a single mutator per session.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional

from .engine import recompute_goals
from .models import (
    AlertDraft,
    Customer,
    Expense,
    FinancialAlert,
    Goal,
    GoalType,
    NewCustomer,
    NewExpense,
    NewGoal,
    NewProduct,
    NewSale,
    Product,
    Sale,
    StoreSnapshot,
)

DEFAULT_MAX_ALERTS = 10

ChangeListener = Callable[[str], None]


def _today() -> date:
    """Return today's date (isolated for easier testing)."""
    return datetime.today().date()


def _now() -> datetime:
    """Return the current UTC time (isolated for easier testing)."""
    return datetime.now(timezone.utc)


def _new_id(prefix: str) -> str:
    """Return a fresh identifier such as 'p3f9c2a1b7d4e'."""
    return f"{prefix}{uuid.uuid4().hex[:12]}"


def _sorted_newest_first(records: list) -> list:
    # sorted() is stable with reverse=True: equal dates keep their order.
    return sorted(records, key=lambda r: r.date, reverse=True)


def _ensure_unique_ids(kind: str, records: Iterable) -> None:
    seen: set[str] = set()
    for r in records:
        if r.id in seen:
            raise ValueError(f"Duplicate {kind} id: {r.id!r}")
        seen.add(r.id)


class RecordStore:
    """Authoritative in-memory collections of a dashboard session."""

    def __init__(self, max_alerts: int = DEFAULT_MAX_ALERTS) -> None:
        if max_alerts < 1:
            raise ValueError("max_alerts must be at least 1.")
        self.max_alerts = max_alerts

        self._products: list[Product] = []
        self._sales: list[Sale] = []
        self._expenses: list[Expense] = []
        self._customers: list[Customer] = []
        self._goals: list[Goal] = []
        self._alerts: list[FinancialAlert] = []
        self._listeners: list[ChangeListener] = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener and return a function removing it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, *collections: str) -> None:
        for name in collections:
            for listener in list(self._listeners):
                listener(name)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def products(self) -> tuple[Product, ...]:
        return tuple(self._products)

    @property
    def sales(self) -> tuple[Sale, ...]:
        return tuple(self._sales)

    @property
    def expenses(self) -> tuple[Expense, ...]:
        return tuple(self._expenses)

    @property
    def customers(self) -> tuple[Customer, ...]:
        return tuple(self._customers)

    @property
    def goals(self) -> tuple[Goal, ...]:
        """Goals with ``current`` derived from the current records."""
        return recompute_goals(
            self._goals, self._sales, self._expenses, self._customers
        )

    @property
    def alerts(self) -> tuple[FinancialAlert, ...]:
        return tuple(self._alerts)

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            products=self.products,
            sales=self.sales,
            expenses=self.expenses,
            customers=self.customers,
            goals=self.goals,
            alerts=self.alerts,
        )

    def get_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self._products if p.id == product_id), None)

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return next((c for c in self._customers if c.id == customer_id), None)

    # ------------------------------------------------------------------
    # Bulk loading
    # ------------------------------------------------------------------

    def load(
        self,
        *,
        products: Iterable[Product] = (),
        sales: Iterable[Sale] = (),
        expenses: Iterable[Expense] = (),
        customers: Iterable[Customer] = (),
        goals: Iterable[Goal] = (),
    ) -> None:
        """
        Seed the store with complete records (ids already assigned).

        Loaded records are appended after existing ones. Sales and expenses
        are re-sorted newest first. Stored ``total_spent`` values are kept as
        provided; goal ``current`` values are ignored since goals are
        always projected on read.

        Raises
        ------
        ValueError
            If the resulting collections contain duplicate ids.
        """
        new_products = [*self._products, *products]
        new_sales = _sorted_newest_first([*self._sales, *sales])
        new_expenses = _sorted_newest_first([*self._expenses, *expenses])
        new_customers = [*self._customers, *customers]
        new_goals = [*self._goals, *(replace(g, current=0.0) for g in goals)]

        _ensure_unique_ids("product", new_products)
        _ensure_unique_ids("sale", new_sales)
        _ensure_unique_ids("expense", new_expenses)
        _ensure_unique_ids("customer", new_customers)
        _ensure_unique_ids("goal", new_goals)

        self._products = new_products
        self._sales = new_sales
        self._expenses = new_expenses
        self._customers = new_customers
        self._goals = new_goals

        self._notify("products", "sales", "expenses", "customers", "goals")

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_product(self, data: NewProduct) -> Product:
        product = Product(
            id=_new_id("p"),
            name=data.name,
            sku=data.sku,
            quantity=int(data.quantity),
            price=float(data.price),
            is_recurring=bool(data.is_recurring),
        )
        self._products.insert(0, product)
        self._notify("products")
        return product

    def add_expense(self, data: NewExpense) -> Expense:
        expense = Expense(
            id=_new_id("e"),
            date=data.date,
            category=data.category,
            description=data.description,
            amount=float(data.amount),
        )
        self._expenses = _sorted_newest_first([expense, *self._expenses])
        self._notify("expenses")
        return expense

    def add_sale(self, data: NewSale) -> Sale:
        """
        Record a sale and update the customer's running total.

        The customer's ``total_spent`` is incremented by ``total_price``.
        If ``customer_id`` does not match any customer, the sale is still
        recorded and no customer is updated.
        """
        sale = Sale(
            id=_new_id("s"),
            date=data.date,
            product_id=data.product_id,
            product_name=data.product_name,
            customer_id=data.customer_id,
            customer_name=data.customer_name,
            quantity=int(data.quantity),
            total_price=float(data.total_price),
        )
        self._sales = _sorted_newest_first([sale, *self._sales])

        customers_changed = False
        for idx, customer in enumerate(self._customers):
            if customer.id == sale.customer_id:
                self._customers[idx] = replace(
                    customer, total_spent=customer.total_spent + sale.total_price
                )
                customers_changed = True
                break

        if customers_changed:
            self._notify("sales", "customers")
        else:
            self._notify("sales")
        return sale

    def add_customer(self, data: NewCustomer) -> Customer:
        customer = Customer(
            id=_new_id("c"),
            name=data.name,
            email=data.email,
            total_spent=0.0,
            join_date=_today(),
        )
        self._customers.insert(0, customer)
        self._notify("customers")
        return customer

    def add_goal(self, data: NewGoal) -> Goal:
        goal = Goal(
            id=_new_id("g"),
            title=data.title,
            type=GoalType.parse(data.type),
            target=float(data.target),
            current=0.0,
            deadline=data.deadline,
        )
        self._goals.insert(0, goal)
        self._notify("goals")
        return next(g for g in self.goals if g.id == goal.id)

    def delete_products(self, ids: Iterable[str]) -> int:
        """Remove the given products. Returns the number of records removed."""
        to_delete = set(ids)
        before = len(self._products)
        self._products = [p for p in self._products if p.id not in to_delete]
        removed = before - len(self._products)
        self._notify("products")
        return removed

    def delete_sales(self, ids: Iterable[str]) -> int:
        """Remove the given sales without touching customer totals."""
        to_delete = set(ids)
        before = len(self._sales)
        self._sales = [s for s in self._sales if s.id not in to_delete]
        removed = before - len(self._sales)
        self._notify("sales")
        return removed

    def delete_expenses(self, ids: Iterable[str]) -> int:
        to_delete = set(ids)
        before = len(self._expenses)
        self._expenses = [e for e in self._expenses if e.id not in to_delete]
        removed = before - len(self._expenses)
        self._notify("expenses")
        return removed

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def push_alerts(
        self,
        drafts: Iterable[AlertDraft],
        now: Optional[datetime] = None,
    ) -> tuple[FinancialAlert, ...]:
        """
        Stamp alert drafts and prepend them to the recent-alerts window.

        Each draft receives a fresh id and the timestamp ``now`` (current UTC
        time by default). The window keeps the ``max_alerts`` most recent
        alerts; older ones are discarded.

        Returns
        -------
        tuple[FinancialAlert, ...]
            The newly created alerts, in the order of the drafts.
        """
        timestamp = now or _now()
        created = [
            FinancialAlert(
                id=_new_id("alert-"),
                title=d.title,
                message=d.message,
                severity=d.severity,
                timestamp=timestamp,
            )
            for d in drafts
        ]
        if not created:
            return ()

        self._alerts = [*created, *self._alerts][: self.max_alerts]
        self._notify("alerts")
        return tuple(created)
