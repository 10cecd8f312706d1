from datetime import date

import pytest

from smb_dashboard.models import Customer, Expense, Product, Sale


def make_sale(
    sale_id: str,
    day: str,
    total: float,
    customer_id: str = "c1",
    product_id: str = "p1",
    quantity: int = 1,
) -> Sale:
    return Sale(
        id=sale_id,
        date=date.fromisoformat(day),
        product_id=product_id,
        product_name=f"Product {product_id}",
        customer_id=customer_id,
        customer_name=f"Customer {customer_id}",
        quantity=quantity,
        total_price=total,
    )


def make_expense(
    expense_id: str, day: str, amount: float, category: str = "Software"
) -> Expense:
    return Expense(
        id=expense_id,
        date=date.fromisoformat(day),
        category=category,
        description=f"{category} expense {expense_id}",
        amount=amount,
    )


def make_customer(
    customer_id: str, joined: str, total_spent: float = 0.0
) -> Customer:
    return Customer(
        id=customer_id,
        name=f"Customer {customer_id}",
        email=f"{customer_id}@example.com",
        total_spent=total_spent,
        join_date=date.fromisoformat(joined),
    )


def make_product(
    product_id: str,
    quantity: int = 10,
    price: float = 10.0,
    is_recurring: bool = False,
) -> Product:
    return Product(
        id=product_id,
        name=f"Product {product_id}",
        sku=f"SKU-{product_id}",
        quantity=quantity,
        price=price,
        is_recurring=is_recurring,
    )


@pytest.fixture(autouse=True)
def _no_api_key(monkeypatch) -> None:
    """Never reach the real AI service from tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
