from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash

from config import Config
from database import create_db_engine, init_db, make_session_factory, session_scope
from models import AdminUser, MenuCategory, MenuItem, Table

# Demo menu: category -> [(name, price, image)]
DEMO_MENU = {
    'Starters': [
        ('Garlic Bread', '4.50', 'https://via.placeholder.com/300x200/FF6B6B/FFFFFF?text=Garlic+Bread'),
        ('Tomato Soup', '5.00', 'https://via.placeholder.com/300x200/4ECDC4/FFFFFF?text=Tomato+Soup'),
    ],
    'Mains': [
        ('Classic Burger', '12.00', 'https://via.placeholder.com/300x200/45B7D1/FFFFFF?text=Burger'),
        ('Margherita Pizza', '11.50', 'https://via.placeholder.com/300x200/96CEB4/FFFFFF?text=Pizza'),
        ('Grilled Salmon', '16.75', 'https://via.placeholder.com/300x200/FF6B6B/FFFFFF?text=Salmon'),
    ],
    'Drinks': [
        ('Lemonade', '3.00', 'https://via.placeholder.com/300x200/4ECDC4/FFFFFF?text=Lemonade'),
        ('Espresso', '2.50', 'https://via.placeholder.com/300x200/45B7D1/FFFFFF?text=Espresso'),
    ],
}

DEMO_TABLES = ['T01', 'T02', 'T03', 'T04', 'PATIO-1']

DEMO_USERS = [
    ('admin', 'admin123', 'admin'),
    ('staff', 'staff123', 'staff'),
]


def seed(db):
    if db.query(MenuCategory).first() is None:
        for category_name, items in DEMO_MENU.items():
            category = MenuCategory(name=category_name, is_active=True)
            db.add(category)
            db.flush()
            for name, price, image_url in items:
                db.add(MenuItem(
                    name=name,
                    price=Decimal(price),
                    image_url=image_url,
                    category_id=category.id,
                    is_active=True,
                ))

    existing_codes = {code for (code,) in db.query(Table.code).all()}
    for code in DEMO_TABLES:
        if code not in existing_codes:
            db.add(Table(code=code, is_active=True))
    db.commit()

    # Admin accounts
    for username, password, role in DEMO_USERS:
        try:
            db.add(AdminUser(username=username, password_hash=generate_password_hash(password), role=role))
            db.commit()
        except IntegrityError:
            db.rollback()  # user already exists


def init_database(database_url=None):
    engine = create_db_engine(database_url or Config.DATABASE_URL)
    init_db(engine)
    with session_scope(make_session_factory(engine)) as db:
        seed(db)
    print("Database initialised!")


if __name__ == "__main__":
    init_database()
