from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Boolean, text
from sqlalchemy.orm import declarative_base
from datetime import datetime

Base = declarative_base()

# Statuses counted as "open" on the dashboard; NULL is open too
OPEN_STATUSES = ("Pending", "New")


class MenuCategory(Base):
    __tablename__ = "menucategory"
    id = Column("CategoryId", Integer, primary_key=True, index=True)
    name = Column("CategoryName", String(100), nullable=False)
    # IsActive and Status are tri-state: evaluates_none() writes an explicit None
    # as NULL instead of letting the server default fill it in
    is_active = Column("IsActive", Boolean().evaluates_none(), server_default=text("1"))


class MenuItem(Base):
    __tablename__ = "menuitem"
    id = Column("MenuItemId", Integer, primary_key=True, index=True)
    name = Column("Name", String(100))
    price = Column("Price", Numeric(10, 2))
    image_url = Column("ImageUrl", String(255))
    category_id = Column("CategoryId", Integer, ForeignKey("menucategory.CategoryId"), index=True)
    is_active = Column("IsActive", Boolean().evaluates_none(), server_default=text("1"))


class Table(Base):
    __tablename__ = "tables"
    id = Column("TableId", Integer, primary_key=True, index=True)
    code = Column("TableCode", String(100), unique=True, nullable=False)
    is_active = Column("IsActive", Boolean().evaluates_none(), server_default=text("1"))


class Order(Base):
    __tablename__ = "orders"
    id = Column("OrderId", Integer, primary_key=True, index=True)
    table_id = Column("TableId", Integer, ForeignKey("tables.TableId"), index=True)
    order_time = Column("OrderTime", DateTime, default=datetime.now)
    status = Column("Status", String(20).evaluates_none(), server_default=text("'Pending'"))  # Pending / New / Preparing / Served / Closed


class OrderItem(Base):
    __tablename__ = "orderitems"
    id = Column("OrderItemId", Integer, primary_key=True, index=True)
    order_id = Column("OrderId", Integer, ForeignKey("orders.OrderId"), index=True)
    menu_item_id = Column("MenuItemId", Integer, ForeignKey("menuitem.MenuItemId"), index=True)
    quantity = Column("Quantity", Integer)
    price_at_order = Column("PriceAtOrder", Numeric(10, 2))


class AdminUser(Base):
    __tablename__ = "admin_users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default="staff")
