from datetime import date

import pytest

from smb_dashboard.engine import compute_mrr
from smb_dashboard.models import AlertSeverity, FinancialAlert, FinancialTotals
from smb_dashboard.periods import determine_range
from smb_dashboard.views import (
    alerts_to_dataframe,
    chart_points,
    customer_history_to_dataframe,
    customers_to_dataframe,
    expense_categories,
    expenses_export_rows,
    filter_customers,
    filter_expenses,
    filter_products,
    filter_sales,
    group_by_month,
    inventory_export_rows,
    kpis_to_dataframe,
    product_history_to_dataframe,
    products_to_dataframe,
    revenue_expense_frame,
    round_series,
    sales_export_rows,
    select_by_ids,
    selection_export_name,
)

from conftest import make_customer, make_expense, make_product, make_sale


@pytest.fixture
def products():
    return [
        make_product("p1", quantity=9999, price=49.99, is_recurring=True),
        make_product("p3", quantity=42, price=499.0),
        make_product("p4", quantity=5, price=9.99),
        make_product("p5", quantity=0, price=1500.0),
    ]


def test_filter_products_by_status(products) -> None:
    in_stock = filter_products(products, status="in_stock")
    low = filter_products(products, status="low_stock")
    out = filter_products(products, status="out_of_stock")

    assert [p.id for p in in_stock] == ["p1", "p3"]
    assert [p.id for p in low] == ["p4"]
    assert [p.id for p in out] == ["p5"]


def test_filter_products_search_is_case_insensitive(products) -> None:
    assert [p.id for p in filter_products(products, search="sku-P3")] == ["p3"]
    assert len(filter_products(products, search="product")) == 4


def test_filter_products_rejects_unknown_status(products) -> None:
    with pytest.raises(ValueError, match="Unknown stock status"):
        filter_products(products, status="backordered")


def test_filter_sales_by_search_and_range() -> None:
    sales = [
        make_sale("s1", "2024-08-10", 1.0, customer_id="c1"),
        make_sale("s2", "2024-05-10", 1.0, customer_id="c1"),
        make_sale("s3", "2024-08-11", 1.0, customer_id="c2"),
    ]

    last_30 = determine_range("30d", date(2024, 8, 15))

    assert [s.id for s in filter_sales(sales, period=last_30)] == ["s1", "s3"]
    assert [s.id for s in filter_sales(sales, "customer C2")] == ["s3"]


def test_filter_expenses_by_category_and_description() -> None:
    expenses = [
        make_expense("e1", "2024-07-01", 10.0, category="Marketing"),
        make_expense("e2", "2024-07-02", 20.0, category="Software"),
    ]

    assert [e.id for e in filter_expenses(expenses, category="Marketing")] == ["e1"]
    assert [e.id for e in filter_expenses(expenses, category="all")] == ["e1", "e2"]
    assert [e.id for e in filter_expenses(expenses, search="software")] == ["e2"]
    assert expense_categories(expenses) == ["Marketing", "Software"]


def test_filter_customers_by_name_or_email() -> None:
    customers = [make_customer("c1", "2024-01-01"), make_customer("c2", "2024-01-01")]

    assert [c.id for c in filter_customers(customers, "c2@example")] == ["c2"]
    assert len(filter_customers(customers, None)) == 2


def test_group_by_month_newest_first() -> None:
    sales = [
        make_sale("s1", "2024-07-20", 1.0),
        make_sale("s2", "2023-12-05", 1.0),
        make_sale("s3", "2024-07-02", 1.0),
        make_sale("s4", "2024-02-14", 1.0),
    ]

    groups = group_by_month(sales)

    assert list(groups) == ["July 2024", "February 2024", "December 2023"]
    assert [s.id for s in groups["July 2024"]] == ["s1", "s3"]


def test_inventory_export_rows(products) -> None:
    rows = inventory_export_rows(products[:2])

    assert list(rows[0]) == ["Name", "SKU", "Price", "Quantity", "Value", "Recurring"]
    assert rows[0]["Value"] == "N/A"
    assert rows[0]["Recurring"] == "Yes"
    assert rows[1]["Value"] == "20958.00"
    assert rows[1]["Recurring"] == "No"


def test_sales_and_expenses_export_rows() -> None:
    sale_rows = sales_export_rows([make_sale("s1", "2024-07-01", 99.5, quantity=2)])
    expense_rows = expenses_export_rows([make_expense("e1", "2024-07-03", 12.0)])

    assert sale_rows == [
        {
            "Date": "2024-07-01",
            "Customer": "Customer c1",
            "Product": "Product p1",
            "Quantity": 2,
            "TotalPrice": "99.50",
        }
    ]
    assert list(expense_rows[0]) == ["Date", "Category", "Description", "Amount"]
    assert expense_rows[0]["Amount"] == "12.00"


def test_selection_helpers() -> None:
    sales = [make_sale(f"s{i}", "2024-07-01", 1.0) for i in range(4)]

    assert selection_export_name("sales", date(2024, 7, 31)) == (
        "sales_selection_2024-07-31"
    )
    assert [s.id for s in select_by_ids(sales, {"s3", "s1"})] == ["s1", "s3"]


def test_products_to_dataframe_statuses(products) -> None:
    df = products_to_dataframe(products)

    assert df["status"].tolist() == ["Recurring", "In Stock", "Low Stock", "Out of Stock"]
    assert df.loc[0, "value"] == "N/A"
    assert products_to_dataframe([]).empty


def test_customers_to_dataframe_orders_and_aov() -> None:
    customers = [make_customer("c1", "2024-01-01", total_spent=300.0)]
    sales = [make_sale("s1", "2024-01-05", 100.0), make_sale("s2", "2024-02-05", 200.0)]

    df = customers_to_dataframe(customers, sales)

    assert df.loc[0, "orders"] == 2
    assert df.loc[0, "average_order_value"] == pytest.approx(150.0)


def test_kpis_to_dataframe() -> None:
    df = kpis_to_dataframe(FinancialTotals(100.0, 40.0, 60.0), 250.0, 3)

    values = dict(zip(df["kpi"], df["value"]))
    assert values["Net profit"] == 60.0
    assert values["Inventory value"] == 250.0
    assert values["Customers"] == 3


def test_revenue_expense_frame_fills_missing_months() -> None:
    sales = [make_sale("s1", "2024-05-10", 100.0), make_sale("s2", "2024-07-10", 50.0)]
    expenses = [make_expense("e1", "2024-06-01", 30.0), make_expense("e2", "2024-07-01", 20.0)]

    df = revenue_expense_frame(sales, expenses)

    assert df["name"].tolist() == ["May 2024", "Jun 2024", "Jul 2024"]
    assert df["revenue"].tolist() == pytest.approx([100.0, 0.0, 50.0])
    assert df["expenses"].tolist() == pytest.approx([0.0, 30.0, 20.0])
    assert df["profit"].tolist() == pytest.approx([100.0, -30.0, 30.0])


def test_revenue_expense_frame_with_only_expenses() -> None:
    df = revenue_expense_frame([], [make_expense("e1", "2024-06-01", 30.0)])

    assert df["revenue"].tolist() == [0.0]
    assert df["profit"].tolist() == [-30.0]


def test_chart_points_and_round_series() -> None:
    products = [make_product("p1", is_recurring=True)]
    sales = [
        make_sale("s1", "2024-06-03", 33.333, product_id="p1"),
        make_sale("s2", "2024-07-03", 10.0, product_id="p1"),
    ]
    mrr = compute_mrr(sales, products)

    assert chart_points(mrr, "mrr") == [
        {"name": "Jun 2024", "value": pytest.approx(33.333)},
        {"name": "Jul 2024", "value": 10.0},
    ]
    rounded = round_series(mrr, 2)
    assert "period" not in rounded.columns
    assert rounded["mrr"].tolist() == pytest.approx([33.33, 10.0])


def test_alerts_to_dataframe() -> None:
    from datetime import datetime, timezone

    alert = FinancialAlert(
        id="alert-1",
        title="Revenue drop",
        message="Revenue fell 40%.",
        severity=AlertSeverity.CRITICAL,
        timestamp=datetime(2024, 7, 31, 9, 0, tzinfo=timezone.utc),
    )

    df = alerts_to_dataframe([alert])

    assert df.loc[0, "severity"] == "critical"
    assert df.loc[0, "timestamp"].startswith("2024-07-31T09:00:00")


def test_product_history_is_newest_first() -> None:
    sales = [
        make_sale("s1", "2024-05-01", 20.0, customer_id="c1", product_id="p1", quantity=2),
        make_sale("s2", "2024-07-01", 30.004, customer_id="c2", product_id="p1", quantity=3),
        make_sale("s3", "2024-06-01", 99.0, product_id="p2"),
    ]

    df = product_history_to_dataframe(make_product("p1"), sales)

    assert list(df.columns) == ["date", "customer", "quantity", "total"]
    assert list(df["date"]) == ["2024-07-01", "2024-05-01"]
    assert list(df["customer"]) == ["Customer c2", "Customer c1"]
    assert df["total"].iloc[0] == 30.0


def test_customer_history_lists_product_and_quantity() -> None:
    sales = [
        make_sale("s1", "2024-05-01", 20.0, customer_id="c1", product_id="p1", quantity=2),
        make_sale("s2", "2024-07-01", 15.0, customer_id="c1", product_id="p2"),
        make_sale("s3", "2024-06-01", 99.0, customer_id="c2"),
    ]

    df = customer_history_to_dataframe(make_customer("c1", "2024-01-01"), sales)

    assert list(df["product"]) == ["Product p2 (x1)", "Product p1 (x2)"]
    assert list(df["total"]) == [15.0, 20.0]


def test_history_frames_are_empty_without_sales() -> None:
    df = customer_history_to_dataframe(make_customer("c9", "2024-01-01"), [])

    assert df.empty
    assert list(df.columns) == ["date", "product", "total"]
