"""Staff-side management of menu categories, menu items and tables.

Nothing here hard-deletes a row: categories, items and tables are only
deactivated so historical orders keep resolving.
"""

import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import NotFoundError, PersistenceError, ValidationError
from models import MenuCategory, MenuItem, Table

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


def _required_text(value, label):
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{label} is required")
    if len(value) > MAX_NAME_LENGTH:
        raise ValidationError(f"{label} must be at most {MAX_NAME_LENGTH} characters")
    return value


def _parse_price(value):
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, AttributeError):
        raise ValidationError("Price must be a number")
    if not price.is_finite() or price < 0:
        raise ValidationError("Price must be zero or more")
    return price.quantize(Decimal("0.01"))


def _parse_id(value, label):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label}")


def _commit(db, action):
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Constraint violation while trying to {action}: {e.orig}")
        raise PersistenceError(f"Error trying to {action}: duplicate or invalid value") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error trying to {action}")
        raise PersistenceError(f"Error trying to {action}") from e


def _get_or_404(db, model, object_id, label):
    obj = db.get(model, object_id)
    if obj is None:
        raise NotFoundError(f"{label} not found")
    return obj


# Categories

def list_categories(db, active_only=False):
    query = db.query(MenuCategory)
    if active_only:
        query = query.filter(MenuCategory.is_active.is_(True))
    return query.order_by(MenuCategory.name).all()


def add_category(db, name):
    category = MenuCategory(name=_required_text(name, "Category name"), is_active=True)
    db.add(category)
    _commit(db, "add category")
    logger.info(f"Category {category.id} added: {category.name}")
    return category


def update_category(db, category_id, name, is_active=False):
    category = _get_or_404(db, MenuCategory, category_id, "Category")
    category.name = _required_text(name, "Category name")
    category.is_active = bool(is_active)
    _commit(db, "update category")
    return category


# Menu items

def list_menu_items(db):
    """All menu items with their category name, ordered for the admin table."""
    rows = (
        db.query(MenuItem, MenuCategory.name)
        .outerjoin(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .order_by(MenuCategory.name, MenuItem.name)
        .all()
    )
    return [{'item': item, 'category_name': category_name} for item, category_name in rows]


def _check_category(db, category_id):
    category_id = _parse_id(category_id, "category")
    if category_id is not None:
        _get_or_404(db, MenuCategory, category_id, "Category")
    return category_id


def add_menu_item(db, name, price, category_id, image_url=""):
    item = MenuItem(
        name=_required_text(name, "Menu item name"),
        price=_parse_price(price),
        category_id=_check_category(db, category_id),
        image_url=(image_url or "").strip(),
        is_active=True,
    )
    db.add(item)
    _commit(db, "add menu item")
    logger.info(f"Menu item {item.id} added: {item.name} @ {item.price}")
    return item


def update_menu_item(db, menu_item_id, name, price, category_id, image_url="", is_active=False):
    item = _get_or_404(db, MenuItem, menu_item_id, "Menu item")
    item.name = _required_text(name, "Menu item name")
    item.price = _parse_price(price)
    item.category_id = _check_category(db, category_id)
    item.image_url = (image_url or "").strip()
    item.is_active = bool(is_active)
    _commit(db, "update menu item")
    return item


# Tables

def list_tables(db):
    return db.query(Table).order_by(Table.code).all()


def add_table(db, code):
    table = Table(code=_required_text(code, "Table code"), is_active=True)
    db.add(table)
    _commit(db, "add table")
    logger.info(f"Table {table.id} added: {table.code}")
    return table


def set_table_active(db, table_id, is_active):
    table = _get_or_404(db, Table, table_id, "Table")
    table.is_active = bool(is_active)
    _commit(db, "update table")
    return table
