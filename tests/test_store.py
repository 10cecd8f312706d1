from datetime import date, datetime, timezone

import pytest

import smb_dashboard.store as store_module
from smb_dashboard.models import (
    AlertDraft,
    AlertSeverity,
    GoalType,
    NewCustomer,
    NewExpense,
    NewGoal,
    NewProduct,
    NewSale,
    ValidationError,
)
from smb_dashboard.store import RecordStore

from conftest import make_customer, make_expense, make_sale


def _new_sale(customer_id: str, total: float, day: str = "2024-07-01") -> NewSale:
    return NewSale(
        date=date.fromisoformat(day),
        product_id="p1",
        product_name="Product p1",
        customer_id=customer_id,
        customer_name=f"Customer {customer_id}",
        quantity=1,
        total_price=total,
    )


def test_add_sale_increments_customer_total_spent() -> None:
    store = RecordStore()
    store.load(customers=[make_customer("c1", "2024-01-01")])

    store.add_sale(_new_sale("c1", 50.0))

    assert store.get_customer("c1").total_spent == pytest.approx(50.0)


def test_add_sale_with_unknown_customer_leaves_customers_untouched() -> None:
    store = RecordStore()
    store.load(customers=[make_customer("c1", "2024-01-01", total_spent=10.0)])

    sale = store.add_sale(_new_sale("ghost", 75.0))

    assert sale in store.sales
    assert store.get_customer("c1").total_spent == pytest.approx(10.0)


def test_delete_sales_does_not_cascade_to_total_spent() -> None:
    store = RecordStore()
    store.load(customers=[make_customer("c1", "2024-01-01")])
    sale = store.add_sale(_new_sale("c1", 50.0))

    removed = store.delete_sales([sale.id])

    assert removed == 1
    assert store.sales == ()
    assert store.get_customer("c1").total_spent == pytest.approx(50.0)


def test_add_sale_increases_total_revenue_by_its_price() -> None:
    from smb_dashboard.engine import total_revenue

    store = RecordStore()
    store.load(sales=[make_sale("s1", "2024-06-01", 100.0)])
    before = total_revenue(store.sales)

    store.add_sale(_new_sale("c1", 42.5))

    assert total_revenue(store.sales) == pytest.approx(before + 42.5)


def test_sales_and_expenses_are_kept_newest_first() -> None:
    store = RecordStore()
    store.load(
        sales=[
            make_sale("s1", "2024-05-01", 1.0),
            make_sale("s2", "2024-07-01", 1.0),
        ],
        expenses=[make_expense("e1", "2024-03-01", 5.0)],
    )

    new_sale = store.add_sale(_new_sale("c1", 3.0, day="2024-06-01"))
    store.add_expense(
        NewExpense(
            date=date(2024, 4, 1),
            category="Software",
            description="Licence",
            amount=20.0,
        )
    )

    assert [s.id for s in store.sales] == ["s2", new_sale.id, "s1"]
    assert [e.date for e in store.expenses] == [date(2024, 4, 1), date(2024, 3, 1)]


def test_new_sale_precedes_existing_sale_on_same_date() -> None:
    store = RecordStore()
    store.load(sales=[make_sale("s1", "2024-07-01", 1.0)])

    new_sale = store.add_sale(_new_sale("c1", 2.0, day="2024-07-01"))

    assert store.sales[0].id == new_sale.id


def test_add_product_and_customer_prepend_with_fresh_ids(monkeypatch) -> None:
    monkeypatch.setattr(store_module, "_today", lambda: date(2024, 8, 1))
    store = RecordStore()

    p1 = store.add_product(NewProduct(name="A", sku="A-1", quantity=3, price=2.0))
    p2 = store.add_product(NewProduct(name="B", sku="B-1", quantity=0, price=5.0))
    customer = store.add_customer(NewCustomer(name="Acme", email="a@acme.test"))

    assert [p.id for p in store.products] == [p2.id, p1.id]
    assert p1.id != p2.id
    assert customer.total_spent == 0.0
    assert customer.join_date == date(2024, 8, 1)


def test_goals_are_projected_from_current_records() -> None:
    store = RecordStore()
    store.load(
        sales=[make_sale("s1", "2024-07-01", 1200.0)],
        customers=[make_customer("c1", "2024-01-01")],
    )

    goal = store.add_goal(
        NewGoal(
            title="Revenue", type=GoalType.REVENUE, target=1000, deadline=date(2024, 12, 31)
        )
    )
    assert goal.current == pytest.approx(1200.0)

    store.delete_sales(["s1"])
    assert store.goals[0].current == pytest.approx(0.0)


def test_goal_types_track_their_metric() -> None:
    store = RecordStore()
    store.load(
        sales=[make_sale("s1", "2024-07-01", 500.0)],
        expenses=[make_expense("e1", "2024-07-02", 200.0)],
        customers=[
            make_customer("c1", "2024-01-01"),
            make_customer("c2", "2024-02-01"),
        ],
    )
    deadline = date(2024, 12, 31)
    store.add_goal(NewGoal(title="P", type="profit", target=1000, deadline=deadline))
    store.add_goal(NewGoal(title="C", type="customers", target=10, deadline=deadline))

    by_title = {g.title: g for g in store.goals}
    assert by_title["P"].current == pytest.approx(300.0)
    assert by_title["C"].current == pytest.approx(2.0)


def test_listeners_are_notified_after_mutation() -> None:
    store = RecordStore()
    store.load(customers=[make_customer("c1", "2024-01-01")])
    seen = []

    def listener(name: str) -> None:
        seen.append((name, len(store.sales)))

    unsubscribe = store.subscribe(listener)
    store.add_sale(_new_sale("c1", 10.0))
    unsubscribe()
    store.add_sale(_new_sale("c1", 10.0))

    assert seen == [("sales", 1), ("customers", 1)]


def test_push_alerts_caps_window_and_keeps_newest_first() -> None:
    store = RecordStore(max_alerts=10)
    t0 = datetime(2024, 7, 1, tzinfo=timezone.utc)
    t1 = datetime(2024, 7, 2, tzinfo=timezone.utc)

    first = store.push_alerts(
        [AlertDraft(f"old {i}", "m", AlertSeverity.INFO) for i in range(8)], now=t0
    )
    second = store.push_alerts(
        [AlertDraft(f"new {i}", "m", AlertSeverity.WARNING) for i in range(3)], now=t1
    )

    alerts = store.alerts
    assert len(first) == 8 and len(second) == 3
    assert len(alerts) == 10
    assert [a.title for a in alerts[:3]] == ["new 0", "new 1", "new 2"]
    assert all(a.timestamp == t1 for a in alerts[:3])
    assert alerts[-1].title == "old 6"
    assert len({a.id for a in alerts}) == 10


def test_push_empty_alerts_is_a_noop() -> None:
    store = RecordStore()
    seen = []
    store.subscribe(seen.append)

    assert store.push_alerts([]) == ()
    assert seen == []


def test_load_rejects_duplicate_ids() -> None:
    store = RecordStore()
    with pytest.raises(ValueError, match="Duplicate sale id"):
        store.load(
            sales=[
                make_sale("s1", "2024-07-01", 1.0),
                make_sale("s1", "2024-07-02", 2.0),
            ]
        )


def test_collections_are_read_only_tuples() -> None:
    store = RecordStore()
    store.load(sales=[make_sale("s1", "2024-07-01", 1.0)])

    assert isinstance(store.sales, tuple)
    snapshot = store.snapshot()
    store.delete_sales(["s1"])
    assert len(snapshot.sales) == 1


@pytest.mark.parametrize(
    "factory",
    [
        lambda: NewProduct(name="", sku="X", quantity=1, price=1.0),
        lambda: NewProduct(name="X", sku="X", quantity=-1, price=1.0),
        lambda: NewExpense(date=date(2024, 1, 1), category="", description="d", amount=1),
        lambda: NewExpense(
            date=date(2024, 1, 1), category="c", description="d", amount=-5
        ),
        lambda: _new_sale("", 1.0),
        lambda: NewSale(
            date=date(2024, 1, 1),
            product_id="p1",
            product_name="P",
            customer_id="c1",
            customer_name="C",
            quantity=0,
            total_price=1.0,
        ),
        lambda: NewCustomer(name="Acme", email=" "),
        lambda: NewGoal(title="G", type="revenue", target=0, deadline=date(2024, 1, 1)),
    ],
)
def test_invalid_payloads_raise_validation_error(factory) -> None:
    with pytest.raises(ValidationError):
        factory()


def test_unknown_goal_type_is_rejected() -> None:
    with pytest.raises(ValidationError, match="Goal: Unknown goal type 'churn'"):
        NewGoal(title="G", type="churn", target=5, deadline=date(2024, 1, 1))
