"""Customer-facing ordering: table lookup, menu listing and order placement."""

import logging
from collections import namedtuple
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from errors import NotFoundError, PersistenceError, ValidationError
from models import MenuCategory, MenuItem, Order, OrderItem, Table

logger = logging.getLogger(__name__)

CartLine = namedtuple("CartLine", ["menu_item_id", "quantity"])

# ids and quantities are stored in signed 32-bit INT columns
MAX_INT_COLUMN = 2**31 - 1


def find_active_table(db, code):
    """Return the table for ``code`` unless it is explicitly inactive."""
    if not code or not isinstance(code, str):
        raise ValidationError("Invalid table code.")
    table = (
        db.query(Table)
        .filter(Table.code == code)
        .filter(or_(Table.is_active.is_(True), Table.is_active.is_(None)))
        .first()
    )
    if table is None:
        raise NotFoundError("Invalid or inactive table.")
    return table


def get_menu(db):
    """Active categories with their active items, for the menu page."""
    categories = (
        db.query(MenuCategory)
        .filter(MenuCategory.is_active.is_(True))
        .order_by(MenuCategory.name)
        .all()
    )
    items = (
        db.query(MenuItem)
        .join(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .filter(MenuCategory.is_active.is_(True))
        .filter(MenuItem.is_active.is_(True))
        .order_by(MenuItem.name)
        .all()
    )

    items_by_category = {}
    for item in items:
        items_by_category.setdefault(item.category_id, []).append(item)

    return [
        {'id': category.id, 'name': category.name, 'items': items_by_category.get(category.id, [])}
        for category in categories
    ]


def _to_int(value, raw):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid order line: {raw!r}")
    if abs(number) > MAX_INT_COLUMN:
        raise ValidationError(f"Invalid order line: {raw!r}")
    return number


def _to_cart_line(raw):
    """Return a ``CartLine``, or None for a line with nothing ordered."""
    if isinstance(raw, CartLine):
        menu_item_id, quantity = raw
    elif not isinstance(raw, dict):
        raise ValidationError(f"Invalid order line: {raw!r}")
    else:
        menu_item_id = raw.get('menuItemId', raw.get('MenuItemId'))
        quantity = raw.get('quantity', raw.get('Quantity', 0))

    quantity = _to_int(quantity or 0, raw)
    if quantity <= 0:
        return None
    return CartLine(_to_int(menu_item_id, raw), quantity)


def parse_cart(raw_lines):
    """Lines with a positive quantity; the rest are dropped before their ids are read."""
    if raw_lines and not isinstance(raw_lines, (list, tuple)):
        raise ValidationError("Order items must be a list")
    lines = (_to_cart_line(raw) for raw in (raw_lines or []))
    return [line for line in lines if line is not None]


def place_order(db, table_code, cart_lines, now=None):
    """Create an order for ``table_code`` and return its id.

    Lines with quantity <= 0 are ignored. Lines whose menu item does not
    exist are logged and dropped; the rest of the order still commits.
    Each line stores the item's price at this moment as ``price_at_order``.
    """
    logger.info(f"place_order called with table code: {table_code}")

    table = find_active_table(db, table_code)

    lines = parse_cart(cart_lines)
    logger.info(f"Items with quantity > 0: {len(lines)}")
    if not lines:
        logger.warning("No items selected for order")
        raise ValidationError("No items selected for order.")

    try:
        order = Order(
            table_id=table.id,
            order_time=now or datetime.now(),
            status="Pending",
        )
        db.add(order)
        # flush to get the order id for the order lines
        db.flush()

        for line in lines:
            menu_item = db.get(MenuItem, line.menu_item_id)
            if menu_item is None:
                logger.warning(f"MenuItem not found: {line.menu_item_id}")
                continue
            db.add(OrderItem(
                order_id=order.id,
                menu_item_id=menu_item.id,
                quantity=line.quantity,
                price_at_order=menu_item.price,
            ))
            logger.info(f"Added order item: {menu_item.id} x {line.quantity}")

        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Error occurred while placing order")
        raise PersistenceError("An error occurred while placing your order. Please try again.") from e

    logger.info(f"Order saved successfully with id {order.id}")
    return order.id
