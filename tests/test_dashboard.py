from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

import dashboard
from errors import NotFoundError, ValidationError
from models import Order
from conftest import add_order

NOON = datetime(2024, 3, 15, 12, 0)


def test_live_stats_on_empty_database(db):
    assert dashboard.get_live_stats(db, as_of=NOON) == {
        'totalOrders': 0,
        'pendingOrders': 0,
        'todayRevenue': 0.0,
        'activeTables': 0,
    }


def test_live_stats_counts_open_orders_and_tables(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 2)], order_time=NOON, status="Pending")
    add_order(db, tables['active'], [(menu['fries'], 1)], order_time=NOON, status="New")
    add_order(db, tables['legacy'], [(menu['steak'], 1)], order_time=NOON, status=None)
    add_order(db, tables['legacy'], [(menu['steak'], 1)], order_time=NOON, status="Closed")

    stats = dashboard.get_live_stats(db, as_of=NOON)

    assert stats['totalOrders'] == 4
    assert stats['pendingOrders'] == 3
    assert stats['activeTables'] == 2
    assert stats['todayRevenue'] == 65.0


def test_live_stats_revenue_only_counts_today(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON)
    add_order(db, tables['active'], [(menu['steak'], 1)], order_time=NOON - timedelta(days=1))
    add_order(db, tables['active'], [(menu['fries'], 1)], order_time=NOON + timedelta(hours=12))

    assert dashboard.get_live_stats(db, as_of=NOON)['todayRevenue'] == 10.0


def test_live_stats_revenue_uses_current_menu_price(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 2)], order_time=NOON)

    menu['burger'].price = Decimal("12.50")
    db.commit()

    assert dashboard.get_live_stats(db, as_of=NOON)['todayRevenue'] == 25.0


def test_live_stats_is_idempotent(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON)

    assert dashboard.get_live_stats(db, as_of=NOON) == dashboard.get_live_stats(db, as_of=NOON)


def test_history_totals_and_most_sold_item(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 2), (menu['fries'], 1)], order_time=NOON)
    add_order(db, tables['legacy'], [(menu['steak'], 1)], order_time=NOON + timedelta(days=1))

    history = dashboard.get_history(db, date(2024, 3, 15), date(2024, 3, 16))

    assert history['totalOrders'] == 2
    assert history['totalRevenue'] == 45.0
    assert history['averageOrderValue'] == 22.5
    assert history['mostSoldItem'] == "Burger"
    assert history['topItems'][0] == {'name': "Burger", 'quantity': 2}


def test_history_end_date_is_inclusive(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 1)], order_time=datetime(2024, 3, 16, 23, 59))
    add_order(db, tables['active'], [(menu['burger'], 1)], order_time=datetime(2024, 3, 17, 0, 0))

    history = dashboard.get_history(db, date(2024, 3, 16), date(2024, 3, 16))

    assert history['totalOrders'] == 1


def test_history_without_orders_returns_error(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON)

    history = dashboard.get_history(db, date(2023, 1, 1), date(2023, 1, 31))

    assert history == {'error': dashboard.NO_HISTORY_ERROR}


def test_history_uses_price_snapshot(db, menu, tables):
    add_order(db, tables['active'], [(menu['burger'], 3)], order_time=NOON)

    menu['burger'].price = Decimal("50.00")
    db.commit()

    history = dashboard.get_history(db, NOON.date(), NOON.date())
    assert history['totalRevenue'] == 30.0


def test_history_top_items_limit_and_tie_order(db, tables):
    from models import MenuItem

    items = []
    for name in ["A", "B", "C", "D", "E", "F"]:
        item = MenuItem(name=name, price=Decimal("1.00"), is_active=True)
        db.add(item)
        items.append(item)
    db.commit()

    # B and C tie on 3; B is seen first
    add_order(db, tables['active'], [(items[1], 3), (items[0], 1)], order_time=NOON)
    add_order(db, tables['active'], [(items[2], 3), (items[3], 5), (items[4], 1), (items[5], 1)], order_time=NOON)

    history = dashboard.get_history(db, NOON.date(), NOON.date())

    assert [item['name'] for item in history['topItems']] == ["D", "B", "C", "A", "E"]
    assert history['mostSoldItem'] == "D"


def test_history_order_without_lines_has_no_most_sold_item(db, tables):
    add_order(db, tables['active'], [], order_time=NOON)

    history = dashboard.get_history(db, NOON.date(), NOON.date())

    assert history['totalOrders'] == 1
    assert history['totalRevenue'] == 0.0
    assert history['mostSoldItem'] == "N/A"
    assert history['topItems'] == []


def test_history_rejects_non_dates(db):
    with pytest.raises(ValidationError):
        dashboard.get_history(db, "yesterday", "today")


def test_pending_orders_newest_first_and_capped(db, menu, tables):
    for minute in range(25):
        add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON + timedelta(minutes=minute))
    add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON + timedelta(hours=1), status="Served")

    pending = dashboard.get_pending_orders(db)

    assert len(pending) == 20
    assert pending[0]['orderTime'] == "12:24"
    assert pending[0]['tableCode'] == "T1"
    assert pending[0]['orderitems'] == [{'name': "Burger", 'quantity': 1, 'price': 10.0, 'total': 10.0}]
    assert all(order['status'] == "Pending" for order in pending)


def test_pending_orders_show_missing_status_as_new(db, menu, tables):
    add_order(db, tables['legacy'], [(menu['fries'], 2)], order_time=NOON, status=None)

    [order] = dashboard.get_pending_orders(db)

    assert order['status'] == "New"
    assert order['tableCode'] == "T2"


def test_order_details(db, menu, tables):
    order = add_order(db, tables['active'], [(menu['burger'], 2), (menu['fries'], 1)], order_time=NOON)

    details = dashboard.get_order_details(db, order.id)

    assert details['orderId'] == order.id
    assert details['tableCode'] == "T1"
    assert details['orderTime'] == "15/03/2024 12:00"
    assert details['status'] == "Pending"
    assert details['total'] == 25.0
    assert details['items'] == [
        {'name': "Burger", 'quantity': 2, 'price': 10.0, 'total': 20.0},
        {'name': "Fries", 'quantity': 1, 'price': 5.0, 'total': 5.0},
    ]


def test_order_details_keep_price_at_order_time(db, menu, tables):
    order = add_order(db, tables['active'], [(menu['steak'], 1)], order_time=NOON)

    menu['steak'].price = Decimal("25.00")
    db.commit()

    assert dashboard.get_order_details(db, order.id)['total'] == 20.0


def test_order_details_missing_order(db):
    with pytest.raises(NotFoundError):
        dashboard.get_order_details(db, 404)


def test_update_order_status_overwrites_any_value(db, menu, tables):
    order = add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON)

    dashboard.update_order_status(db, order.id, "Preparing")
    assert db.get(Order, order.id).status == "Preparing"

    dashboard.update_order_status(db, order.id, "Eaten by the chef")
    assert db.get(Order, order.id).status == "Eaten by the chef"


def test_update_order_status_missing_order(db, menu, tables):
    order = add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON)

    with pytest.raises(NotFoundError):
        dashboard.update_order_status(db, order.id + 100, "Closed")

    assert db.get(Order, order.id).status == "Pending"


def test_update_order_status_requires_status(db, menu, tables):
    order = add_order(db, tables['active'], [(menu['burger'], 1)], order_time=NOON)

    with pytest.raises(ValidationError):
        dashboard.update_order_status(db, order.id, None)
