"""Read-side aggregation for the admin dashboard and order status updates."""

import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import distinct, func, or_
from sqlalchemy.exc import SQLAlchemyError

from errors import NotFoundError, PersistenceError, ValidationError
from models import OPEN_STATUSES, MenuItem, Order, OrderItem, Table

logger = logging.getLogger(__name__)

NO_HISTORY_ERROR = "No orders found for the selected date range"
TOP_ITEMS_LIMIT = 5
PENDING_ORDERS_LIMIT = 20

CENT = Decimal("0.01")


def _money(value):
    if value is None:
        return 0.0
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return float(value.quantize(CENT))


def _day_start(value):
    if isinstance(value, datetime):
        return datetime.combine(value.date(), time.min)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    raise ValidationError(f"Invalid date: {value!r}")


def _is_open():
    return or_(Order.status.in_(OPEN_STATUSES), Order.status.is_(None))


def _line_price(line):
    # snapshot first; lines written before snapshots existed fall back to the live price
    if line['price_at_order'] is not None:
        return line['price_at_order']
    return line['current_price'] or Decimal("0")


def _fetch_lines(db, order_ids):
    """Order lines joined to their menu item, grouped by order id."""
    if not order_ids:
        return {}
    rows = (
        db.query(
            OrderItem.order_id,
            OrderItem.quantity,
            OrderItem.price_at_order,
            MenuItem.name,
            MenuItem.price,
        )
        .outerjoin(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .filter(OrderItem.order_id.in_(order_ids))
        .order_by(OrderItem.order_id, OrderItem.id)
        .all()
    )
    lines = {}
    for order_id, quantity, price_at_order, name, current_price in rows:
        lines.setdefault(order_id, []).append({
            'name': name,
            'quantity': quantity or 0,
            'price_at_order': price_at_order,
            'current_price': current_price,
        })
    return lines


def get_live_stats(db, as_of=None):
    """Counters for the polling dashboard.

    Today's revenue is computed from the *current* menu item price, not the
    per-line snapshot.
    """
    today = _day_start(as_of or datetime.now())
    tomorrow = today + timedelta(days=1)

    total_orders = db.query(func.count(Order.id)).scalar() or 0
    pending_orders = db.query(func.count(Order.id)).filter(_is_open()).scalar() or 0

    today_revenue = (
        db.query(func.sum(OrderItem.quantity * MenuItem.price))
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .join(MenuItem, OrderItem.menu_item_id == MenuItem.id)
        .filter(Order.order_time >= today, Order.order_time < tomorrow)
        .scalar()
    )

    active_tables = (
        db.query(func.count(distinct(Order.table_id)))
        .filter(_is_open())
        .scalar()
    ) or 0

    return {
        'totalOrders': total_orders,
        'pendingOrders': pending_orders,
        'todayRevenue': _money(today_revenue),
        'activeTables': active_tables,
    }


def get_history(db, start_date, end_date):
    """Sales summary for the inclusive calendar range ``start_date``..``end_date``.

    Returns ``{'error': ...}`` instead of raising when nothing matches.
    """
    start = _day_start(start_date)
    end = _day_start(end_date) + timedelta(days=1)

    order_ids = [
        order_id for (order_id,) in (
            db.query(Order.id)
            .filter(Order.order_time >= start, Order.order_time < end)
            .order_by(Order.order_time, Order.id)
            .all()
        )
    ]
    if not order_ids:
        return {'error': NO_HISTORY_ERROR}

    lines_by_order = _fetch_lines(db, order_ids)

    total_revenue = Decimal("0")
    item_sales = {}
    # dict keeps first-encountered order, so equal quantities stay in that order after the stable sort
    for order_id in order_ids:
        for line in lines_by_order.get(order_id, []):
            total_revenue += line['quantity'] * _line_price(line)
            if line['name'] is not None:
                item_sales[line['name']] = item_sales.get(line['name'], 0) + line['quantity']

    top_items = sorted(
        ({'name': name, 'quantity': quantity} for name, quantity in item_sales.items()),
        key=lambda item: item['quantity'],
        reverse=True,
    )[:TOP_ITEMS_LIMIT]

    total_orders = len(order_ids)
    return {
        'totalOrders': total_orders,
        'totalRevenue': _money(total_revenue),
        'averageOrderValue': _money(total_revenue / total_orders),
        'mostSoldItem': top_items[0]['name'] if top_items else "N/A",
        'topItems': top_items,
    }


def _serialize_lines(lines):
    result = []
    for line in lines:
        price = _line_price(line)
        result.append({
            'name': line['name'],
            'quantity': line['quantity'],
            'price': _money(price),
            'total': _money(line['quantity'] * price),
        })
    return result


def get_pending_orders(db, limit=PENDING_ORDERS_LIMIT):
    rows = (
        db.query(Order, Table.code)
        .outerjoin(Table, Order.table_id == Table.id)
        .filter(_is_open())
        .order_by(Order.order_time.desc(), Order.id.desc())
        .limit(limit)
        .all()
    )
    lines_by_order = _fetch_lines(db, [order.id for order, _ in rows])

    result = []
    for order, table_code in rows:
        result.append({
            'orderId': order.id,
            'tableCode': table_code,
            'tableId': order.table_id,
            'orderTime': order.order_time.strftime("%H:%M") if order.order_time else None,
            'status': order.status or "New",
            'orderitems': _serialize_lines(lines_by_order.get(order.id, [])),
        })
    return result


def get_order_details(db, order_id):
    row = (
        db.query(Order, Table.code)
        .outerjoin(Table, Order.table_id == Table.id)
        .filter(Order.id == order_id)
        .first()
    )
    if row is None:
        raise NotFoundError("Order not found")
    order, table_code = row

    items = _serialize_lines(_fetch_lines(db, [order.id]).get(order.id, []))
    return {
        'orderId': order.id,
        'tableCode': table_code,
        'tableId': order.table_id,
        'orderTime': order.order_time.strftime("%d/%m/%Y %H:%M") if order.order_time else None,
        'status': order.status or "New",
        'total': _money(sum(Decimal(str(item['total'])) for item in items)),
        'items': items,
    }


def update_order_status(db, order_id, new_status):
    """Overwrite an order's status. Any string is accepted."""
    if new_status is None:
        raise ValidationError("Status is required")

    order = db.get(Order, order_id)
    if order is None:
        raise NotFoundError("Order not found")

    try:
        order.status = new_status
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error updating status of order {order_id}")
        raise PersistenceError("Error updating order status") from e

    logger.info(f"Order {order_id} status set to {new_status!r}")
    return order
