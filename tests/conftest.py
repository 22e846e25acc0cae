from datetime import datetime
from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from models import AdminUser, MenuCategory, MenuItem, Order, OrderItem, Table


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'DATABASE_URL': f"sqlite:///{tmp_path / 'test.db'}",
        'SECRET_KEY': 'test',
        'ADMIN_AUTH_ENABLED': False,
    })
    yield app
    app.extensions['db_engine'].dispose()


@pytest.fixture
def db(app):
    session = app.extensions['session_factory']()
    yield session
    session.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def menu(db):
    """A small menu: two mains at 10.00 and 20.00, a side at 5.00, and one inactive item."""
    mains = MenuCategory(name="Mains", is_active=True)
    sides = MenuCategory(name="Sides", is_active=True)
    db.add_all([mains, sides])
    db.flush()

    items = {
        'burger': MenuItem(name="Burger", price=Decimal("10.00"), category_id=mains.id, is_active=True),
        'steak': MenuItem(name="Steak", price=Decimal("20.00"), category_id=mains.id, is_active=True),
        'fries': MenuItem(name="Fries", price=Decimal("5.00"), category_id=sides.id, is_active=True),
        'soup': MenuItem(name="Old Soup", price=Decimal("3.00"), category_id=sides.id, is_active=False),
    }
    db.add_all(items.values())
    db.commit()
    return items


@pytest.fixture
def tables(db):
    rows = {
        'active': Table(code="T1", is_active=True),
        'legacy': Table(code="T2", is_active=None),
        'closed': Table(code="T3", is_active=False),
    }
    db.add_all(rows.values())
    db.commit()
    return rows


@pytest.fixture
def admin_user(db):
    user = AdminUser(username="admin", password_hash=generate_password_hash("admin123"), role="admin")
    db.add(user)
    db.commit()
    return user


def add_order(db, table, lines, order_time=None, status="Pending"):
    """Insert an order directly; ``lines`` is a list of (menu_item, quantity)."""
    order = Order(table_id=table.id if table else None, order_time=order_time or datetime.now(), status=status)
    db.add(order)
    db.flush()
    for item, quantity in lines:
        db.add(OrderItem(order_id=order.id, menu_item_id=item.id, quantity=quantity, price_at_order=item.price))
    db.commit()
    return order
