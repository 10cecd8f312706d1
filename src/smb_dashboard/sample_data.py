# SMB Dashboard - Financial Dashboard & Insights application for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Built-in demo dataset.

A small SaaS business: two monthly subscriptions, a few one-time products
and services, eight customers joining between March and July 2024, their
monthly subscription payments, four one-off sales, four months of expenses
and two goals.

Customer ``total_spent`` values are consistent with the generated sales.
"""

from datetime import date

import pandas as pd

from .engine import reconciled_total_spent
from .models import Customer, Expense, Goal, GoalType, Product, Sale

_PRODUCTS = [
    ("p1", "SaaS Platform - Pro Monthly", "SaaS-PRO-M", 9999, 49.99, True),
    ("p2", "SaaS Platform - Business Monthly", "SaaS-BUS-M", 9999, 99.99, True),
    ("p3", "Data Analytics Suite - One Time", "DAS-OTO-01", 42, 499.00, False),
    ("p4", "Cloud Storage - 1TB", "CS-1TB-01", 250, 9.99, False),
    ("p5", "Implementation & Setup Fee", "SETUP-FEE", 9999, 1500.00, False),
    ("p6", "Hourly Consulting", "CONSULT-HR", 800, 150.00, False),
]

_CUSTOMERS = [
    ("c1", "Innovate Corp", "contact@innovate.com", "2024-03-10"),
    ("c2", "Data Solutions Ltd", "hello@datasolutions.com", "2024-04-05"),
    ("c3", "CloudFive Hosting", "support@cloudfive.com", "2024-04-22"),
    ("c4", "QuantumLeap Tech", "qlt@example.com", "2024-05-18"),
    ("c5", "Pioneer Dynamics", "pd@example.com", "2024-06-02"),
    ("c6", "NextGen Systems", "ngs@example.com", "2024-06-15"),
    ("c7", "Vertex Industries", "vi@example.com", "2024-07-01"),
    ("c8", "Apex Innovations", "ai@example.com", "2024-07-20"),
]

_EXPENSES = [
    ("e1", "2024-07-01", "Marketing", "Google Ads Campaign", 2500),
    ("e2", "2024-07-05", "Software", "Figma Subscription", 150),
    ("e3", "2024-07-15", "Office Supplies", "New Monitors", 800),
    ("e10", "2024-07-20", "Cloud Services", "AWS Hosting - July", 3500),
    ("e11", "2024-07-25", "Marketing", "Content Creation", 750),
    ("e4", "2024-06-10", "Marketing", "Social Media Ads", 2200),
    ("e5", "2024-06-20", "Cloud Services", "AWS Hosting - June", 3200),
    ("e12", "2024-06-05", "Software", "Zendesk", 250),
    ("e6", "2024-05-01", "Marketing", "SEO Consultant", 1800),
    ("e7", "2024-05-20", "Cloud Services", "AWS Hosting - May", 3000),
    ("e8", "2024-04-15", "Marketing", "Conference Sponsorship", 3000),
    ("e9", "2024-04-20", "Cloud Services", "AWS Hosting - April", 2800),
]

# (customer id, product id, first payment, number of monthly payments)
_SUBSCRIPTIONS = [
    ("c1", "p1", "2024-03-11", 5),
    ("c2", "p2", "2024-04-06", 4),
    ("c3", "p1", "2024-04-23", 4),
    ("c4", "p2", "2024-05-19", 3),
    ("c5", "p1", "2024-06-03", 2),
    ("c6", "p2", "2024-06-16", 2),
    ("c7", "p1", "2024-07-02", 1),
    ("c8", "p2", "2024-07-21", 1),
]

# (date, product id, customer id, quantity, total price)
_ONE_TIME_SALES = [
    ("2024-04-15", "p5", "c2", 1, 1500.00),
    ("2024-05-20", "p3", "c4", 1, 499.00),
    ("2024-06-18", "p6", "c1", 10, 1500.00),
    ("2024-07-22", "p3", "c7", 2, 998.00),
]

_GOALS = [
    ("g1", "Achieve Q3 Revenue Target", GoalType.REVENUE, 10000, "2024-09-30"),
    ("g2", "Onboard 10 New Customers", GoalType.CUSTOMERS, 10, "2024-12-31"),
]


def _d(value: str) -> date:
    return date.fromisoformat(value)


def _monthly_sales(
    customer: Customer, product: Product, start: date, months: int
) -> list[Sale]:
    sales = []
    for i in range(months):
        day = (pd.Timestamp(start) + pd.DateOffset(months=i)).date()
        sales.append(
            Sale(
                id=f"s-recur-{customer.id}-{product.id}-{i}",
                date=day,
                product_id=product.id,
                product_name=product.name,
                customer_id=customer.id,
                customer_name=customer.name,
                quantity=1,
                total_price=product.price,
            )
        )
    return sales


def build_sample_data() -> dict[str, list]:
    """
    Return the demo dataset as keyword arguments for ``RecordStore.load``.

    The dataset is rebuilt on every call, so callers may modify the lists.
    """
    products = [Product(*row) for row in _PRODUCTS]
    by_product = {p.id: p for p in products}

    customers = [
        Customer(id=cid, name=name, email=email, total_spent=0.0, join_date=_d(joined))
        for cid, name, email, joined in _CUSTOMERS
    ]
    by_customer = {c.id: c for c in customers}

    expenses = [
        Expense(id=eid, date=_d(day), category=cat, description=desc, amount=float(amt))
        for eid, day, cat, desc, amt in _EXPENSES
    ]

    sales: list[Sale] = []
    for cid, pid, start, months in _SUBSCRIPTIONS:
        sales.extend(
            _monthly_sales(by_customer[cid], by_product[pid], _d(start), months)
        )
    for i, (day, pid, cid, qty, total) in enumerate(_ONE_TIME_SALES):
        sales.append(
            Sale(
                id=f"s-oto-{i}",
                date=_d(day),
                product_id=pid,
                product_name=by_product[pid].name,
                customer_id=cid,
                customer_name=by_customer[cid].name,
                quantity=qty,
                total_price=total,
            )
        )

    customers = [
        Customer(
            id=c.id,
            name=c.name,
            email=c.email,
            total_spent=reconciled_total_spent(c.id, sales),
            join_date=c.join_date,
        )
        for c in customers
    ]

    goals = [
        Goal(
            id=gid,
            title=title,
            type=gtype,
            target=float(target),
            current=0.0,
            deadline=_d(deadline),
        )
        for gid, title, gtype, target, deadline in _GOALS
    ]

    return {
        "products": products,
        "sales": sales,
        "expenses": expenses,
        "customers": customers,
        "goals": goals,
    }
