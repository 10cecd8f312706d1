from datetime import date

import pandas as pd
import pytest

from smb_dashboard.engine import (
    average_order_value,
    compute_goal_current,
    compute_ltv_cac,
    compute_mrr,
    compute_totals,
    customer_sales,
    goal_progress_pct,
    inventory_line_value,
    inventory_value,
    month_label,
    monthly_totals,
    product_sales,
    reconciled_total_spent,
    recompute_goals,
    stock_status,
    units_sold,
)
from smb_dashboard.models import FinancialTotals, Goal, GoalType, StockStatus

from conftest import make_customer, make_expense, make_product, make_sale


def test_totals_scenario() -> None:
    totals = compute_totals(
        [make_sale("s1", "2024-07-01", 100.0)],
        [make_expense("e1", "2024-07-01", 40.0)],
    )

    assert totals == FinancialTotals(
        total_revenue=100.0, total_expenses=40.0, net_profit=60.0
    )


def test_totals_on_empty_lists_are_zero() -> None:
    assert compute_totals([], []) == FinancialTotals(0.0, 0.0, 0.0)


def test_monthly_totals_are_in_chronological_order() -> None:
    sales = [
        make_sale("s1", "2024-07-15", 10.0),
        make_sale("s2", "2023-12-01", 5.0),
        make_sale("s3", "2024-02-10", 7.0),
        make_sale("s4", "2024-07-01", 20.0),
        make_sale("s5", "2024-02-28", 3.0),
    ]

    df = monthly_totals(sales, "total_price")

    assert df["name"].tolist() == ["Dec 2023", "Feb 2024", "Jul 2024"]
    assert df["value"].tolist() == pytest.approx([5.0, 10.0, 30.0])
    assert df["period"].is_monotonic_increasing


def test_monthly_totals_empty_input_returns_empty_frame() -> None:
    df = monthly_totals([], "amount")

    assert df.empty
    assert list(df.columns) == ["period", "name", "value"]


def test_month_label_is_locale_independent() -> None:
    assert month_label(pd.Period("2024-09", freq="M")) == "Sep 2024"


def test_mrr_only_counts_recurring_products() -> None:
    products = [
        make_product("p1", is_recurring=True),
        make_product("p2", is_recurring=False),
    ]
    sales = [
        make_sale("s1", "2024-06-03", 49.99, product_id="p1"),
        make_sale("s2", "2024-06-20", 1500.0, product_id="p2"),
        make_sale("s3", "2024-07-03", 49.99, product_id="p1"),
        make_sale("s4", "2024-07-05", 49.99, product_id="p1"),
        make_sale("s5", "2024-08-01", 300.0, product_id="p2"),
    ]

    df = compute_mrr(sales, products)

    assert df["name"].tolist() == ["Jun 2024", "Jul 2024"]
    assert df["mrr"].tolist() == pytest.approx([49.99, 99.98])


def test_ltv_cac_by_month() -> None:
    sales = [
        make_sale("s1", "2024-03-11", 100.0),
        make_sale("s2", "2024-04-11", 100.0),
        make_sale("s3", "2024-05-11", 400.0),
    ]
    expenses = [
        make_expense("e1", "2024-03-01", 300.0, category="Marketing"),
        make_expense("e2", "2024-04-01", 999.0, category="Cloud Services"),
        make_expense("e3", "2024-05-01", 150.0, category="Marketing"),
    ]
    customers = [
        make_customer("c1", "2024-03-10"),
        make_customer("c2", "2024-03-20"),
        make_customer("c3", "2024-05-02"),
    ]

    df = compute_ltv_cac(sales, expenses, customers)

    assert df["name"].tolist() == ["Mar 2024", "Apr 2024", "May 2024"]
    assert df["cumulative_revenue"].tolist() == pytest.approx([100.0, 200.0, 600.0])
    assert df["cumulative_customers"].tolist() == [2, 2, 3]
    assert df["ltv"].tolist() == pytest.approx([50.0, 100.0, 200.0])
    # April has no new customer: CAC is exactly 0, even with non-marketing spend.
    assert df["cac"].tolist() == pytest.approx([150.0, 0.0, 150.0])


def test_ltv_cac_cumulative_columns_never_decrease() -> None:
    sales = [
        make_sale("s1", "2024-01-05", 500.0),
        make_sale("s2", "2024-03-05", 10.0),
        make_sale("s3", "2024-02-05", 0.0),
    ]
    customers = [
        make_customer("c1", "2024-01-01"),
        make_customer("c2", "2024-03-01"),
        make_customer("c3", "2024-03-02"),
    ]

    df = compute_ltv_cac(sales, [], customers)

    assert df["cumulative_revenue"].is_monotonic_increasing
    assert df["cumulative_customers"].is_monotonic_increasing


def test_ltv_is_zero_before_any_customer() -> None:
    df = compute_ltv_cac([make_sale("s1", "2024-01-05", 80.0)], [], [])

    assert df["ltv"].tolist() == [0.0]
    assert df["cac"].tolist() == [0.0]


def test_ltv_cac_uses_configured_marketing_category() -> None:
    expenses = [make_expense("e1", "2024-01-01", 200.0, category="Ads")]
    customers = [make_customer("c1", "2024-01-10")]

    default = compute_ltv_cac([], expenses, customers)
    custom = compute_ltv_cac([], expenses, customers, marketing_category="Ads")

    assert default["cac"].tolist() == [0.0]
    assert custom["cac"].tolist() == [200.0]


def test_metrics_are_idempotent() -> None:
    sales = [make_sale("s1", "2024-01-05", 80.0), make_sale("s2", "2024-02-05", 20.0)]
    customers = [make_customer("c1", "2024-01-01")]

    first = compute_ltv_cac(sales, [], customers)
    second = compute_ltv_cac(sales, [], customers)

    pd.testing.assert_frame_equal(first, second)
    assert compute_totals(sales, []) == compute_totals(sales, [])


def test_goal_progress_is_capped_at_100() -> None:
    goal = Goal(
        id="g1",
        title="Revenue",
        type=GoalType.REVENUE,
        target=1000.0,
        current=0.0,
        deadline=date(2024, 12, 31),
    )

    (projected,) = recompute_goals([goal], [make_sale("s1", "2024-07-01", 1200.0)], [], [])

    assert projected.current == pytest.approx(1200.0)
    assert goal_progress_pct(projected.current, projected.target) == 100.0


@pytest.mark.parametrize(
    "current, target, expected",
    [(250.0, 1000.0, 25.0), (0.0, 10.0, 0.0), (-50.0, 100.0, -50.0), (5.0, 0.0, 0.0)],
)
def test_goal_progress_pct(current, target, expected) -> None:
    assert goal_progress_pct(current, target) == pytest.approx(expected)


def test_compute_goal_current_by_type() -> None:
    totals = FinancialTotals(total_revenue=900.0, total_expenses=400.0, net_profit=500.0)

    assert compute_goal_current(GoalType.REVENUE, totals, 3) == 900.0
    assert compute_goal_current(GoalType.PROFIT, totals, 3) == 500.0
    assert compute_goal_current(GoalType.CUSTOMERS, totals, 3) == 3.0


def test_customer_detail_metrics() -> None:
    customer = make_customer("c1", "2024-01-01", total_spent=300.0)
    sales = [
        make_sale("s1", "2024-01-05", 100.0),
        make_sale("s2", "2024-03-05", 200.0),
        make_sale("s3", "2024-02-05", 50.0, customer_id="c2"),
    ]

    assert [s.id for s in customer_sales("c1", sales)] == ["s2", "s1"]
    assert average_order_value(customer, sales) == pytest.approx(150.0)
    assert average_order_value(make_customer("c9", "2024-01-01", 10.0), sales) == 0.0


def test_reconciled_total_spent_follows_deleted_sales() -> None:
    sales = [make_sale("s1", "2024-01-05", 100.0), make_sale("s2", "2024-03-05", 200.0)]

    assert reconciled_total_spent("c1", sales) == pytest.approx(300.0)
    assert reconciled_total_spent("c1", sales[1:]) == pytest.approx(200.0)


def test_product_sales_history() -> None:
    sales = [
        make_sale("s1", "2024-01-05", 10.0, product_id="p3", quantity=2),
        make_sale("s2", "2024-02-05", 15.0, product_id="p3", quantity=3),
        make_sale("s3", "2024-03-05", 10.0, product_id="p4"),
    ]

    assert [s.id for s in product_sales("p3", sales)] == ["s2", "s1"]
    assert units_sold("p3", sales) == 5


@pytest.mark.parametrize(
    "quantity, expected",
    [
        (0, StockStatus.OUT_OF_STOCK),
        (1, StockStatus.LOW_STOCK),
        (19, StockStatus.LOW_STOCK),
        (20, StockStatus.IN_STOCK),
        (250, StockStatus.IN_STOCK),
    ],
)
def test_stock_status_thresholds(quantity, expected) -> None:
    assert stock_status(make_product("p1", quantity=quantity)) is expected


def test_recurring_products_have_no_stock_status_or_value() -> None:
    subscription = make_product("p1", quantity=9999, price=49.99, is_recurring=True)

    assert stock_status(subscription) is None
    assert inventory_line_value(subscription) is None


def test_inventory_value_excludes_recurring_products() -> None:
    products = [
        make_product("p1", quantity=9999, price=49.99, is_recurring=True),
        make_product("p3", quantity=42, price=499.0),
        make_product("p4", quantity=250, price=9.99),
    ]

    assert inventory_value(products) == pytest.approx(42 * 499.0 + 250 * 9.99)
    assert inventory_value([]) == 0.0
