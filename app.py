from flask import (
    Flask, Blueprint, current_app, flash, jsonify, redirect, render_template,
    request, session, url_for,
)
from datetime import datetime
from functools import wraps
import logging
import re

from werkzeug.security import check_password_hash

import catalog
import dashboard
import ordering
from config import Config, SettingsStore
from database import close_db, create_db_engine, get_db, init_db, make_session_factory
from errors import NotFoundError, RestaurantError, ValidationError
from models import AdminUser

# Logging setup
logging.basicConfig(level=Config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Form fields posted by the menu page look like items[0].menuItemId
ITEM_FIELD = re.compile(r"^items\[(\d+)\]\.(\w+)$", re.IGNORECASE)

EMPTY_STATS = {'totalOrders': 0, 'pendingOrders': 0, 'todayRevenue': 0, 'activeTables': 0}

menu_bp = Blueprint('menu', __name__, url_prefix='/menu')
admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def create_app(config_overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)
    app.secret_key = app.config['SECRET_KEY']

    engine = create_db_engine(app.config['DATABASE_URL'])
    init_db(engine)
    app.extensions['db_engine'] = engine
    app.extensions['session_factory'] = make_session_factory(engine)
    app.extensions['settings'] = SettingsStore(app.config.get('SETTINGS'))

    app.teardown_appcontext(close_db)
    app.register_blueprint(menu_bp)
    app.register_blueprint(admin_bp)

    app.add_template_filter(currency_format, 'currency_format')
    app.context_processor(inject_settings)

    @app.route("/")
    def index():
        return redirect(url_for('admin.dashboard_page'))

    return app


def get_settings():
    return current_app.extensions['settings']


def currency_format(value):
    currency = get_settings().get('system', 'currency', '')
    try:
        if value is None:
            return f"0.00 {currency}".strip()
        return f"{float(value):,.2f} {currency}".strip()
    except (ValueError, TypeError):
        return f"0.00 {currency}".strip()


def inject_settings():
    return {'settings': get_settings().as_dict(), 'now': datetime.now()}


def form_flag(name):
    return request.form.get(name, '').lower() in ('on', 'true', '1', 'yes')


def form_int(name, default=None):
    value = request.form.get(name)
    if value in (None, ''):
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Invalid {name}")


# Admin login decorator
def admin_login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_app.config.get('ADMIN_AUTH_ENABLED') and 'admin_logged_in' not in session:
            return redirect(url_for('admin.admin_login'))
        return f(*args, **kwargs)
    return decorated_function


# ---------- Customer menu ----------

@menu_bp.route('/thankyou')
def thank_you():
    return render_template('thank_you.html')


@menu_bp.route('/<code>')
def menu_page(code):
    db = get_db()
    try:
        table = ordering.find_active_table(db, code)
    except (ValidationError, NotFoundError):
        return "Invalid or inactive table.", 404
    categories = ordering.get_menu(db)
    return render_template('menu.html', categories=categories, table_code=table.code)


def read_order_payload():
    """Pull the table code and cart lines from a JSON or form post."""
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError("Order body must be a JSON object.")
        table_code = data.get('tableCode') or data.get('TableCode')
        if table_code is not None and not isinstance(table_code, str):
            raise ValidationError("Invalid table code.")
        return table_code, data.get('items') or data.get('Items') or []

    lines = {}
    for key, value in request.form.items():
        match = ITEM_FIELD.match(key)
        if match:
            index, field = match.groups()
            lines.setdefault(int(index), {})[field[0].lower() + field[1:]] = value
    table_code = request.form.get('tableCode') or request.form.get('TableCode')
    return table_code, [lines[index] for index in sorted(lines)]


@menu_bp.route('/placeorder', methods=['POST'])
def place_order():
    table_code = None
    try:
        table_code, items = read_order_payload()
        order_id = ordering.place_order(get_db(), table_code, items)
    except RestaurantError as e:
        logger.warning(f"Order rejected for table {table_code!r}: {e.message}")
        return e.message, e.status_code
    except Exception:
        logger.exception("Unexpected error while placing order")
        return "An error occurred while placing your order. Please try again.", 500

    logger.info(f"Order {order_id} placed for table {table_code}")
    return redirect(url_for('menu.thank_you'), code=303)


# ---------- Admin auth ----------

@admin_bp.route('/login', methods=['GET', 'POST'])
def admin_login():
    if request.method == 'POST':
        username = request.form.get('username', '')
        password = request.form.get('password', '')

        user = get_db().query(AdminUser).filter_by(username=username).first()

        if user and check_password_hash(user.password_hash, password):
            session['admin_logged_in'] = True
            session['admin_username'] = username
            session['admin_role'] = user.role
            return redirect(url_for('admin.dashboard_page'))
        logger.warning(f"Failed admin login for {username!r}")
        return render_template('admin_login.html', error='Invalid username or password'), 401

    return render_template('admin_login.html')


@admin_bp.route('/logout')
def admin_logout():
    session.clear()
    return redirect(url_for('admin.admin_login'))


# ---------- Admin pages ----------

@admin_bp.route('')
@admin_bp.route('/dashboard')
@admin_login_required
def dashboard_page():
    return render_template('admin_dashboard.html')


@admin_bp.route('/orders')
@admin_login_required
def orders_page():
    return render_template('admin_orders.html')


@admin_bp.route('/analytics')
@admin_login_required
def analytics_page():
    return render_template('admin_analytics.html')


# ---------- Dashboard JSON (polled) ----------

@admin_bp.route('/getdashboardstats')
@admin_login_required
def get_dashboard_stats():
    try:
        return jsonify(dashboard.get_live_stats(get_db()))
    except Exception:
        logger.exception("Error fetching dashboard stats")
        return jsonify(EMPTY_STATS)


def parse_date(value):
    if not value:
        raise ValidationError("Start and end dates are required")
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")


@admin_bp.route('/gethistorydata')
@admin_login_required
def get_history_data():
    try:
        start_date = parse_date(request.args.get('startDate'))
        end_date = parse_date(request.args.get('endDate'))
        return jsonify(dashboard.get_history(get_db(), start_date, end_date))
    except ValidationError as e:
        return jsonify({'error': e.message})
    except Exception:
        logger.exception("Error fetching history data")
        return jsonify({'error': "Error fetching history data"})


@admin_bp.route('/getpendingorders')
@admin_login_required
def get_pending_orders():
    try:
        return jsonify(dashboard.get_pending_orders(get_db()))
    except Exception:
        logger.exception("Error fetching pending orders")
        return jsonify([])


@admin_bp.route('/getorderdetails')
@admin_login_required
def get_order_details():
    order_id = request.args.get('orderId', type=int)
    if order_id is None:
        return jsonify({'error': "Order not found"})
    try:
        return jsonify(dashboard.get_order_details(get_db(), order_id))
    except NotFoundError as e:
        return jsonify({'error': e.message})
    except Exception:
        logger.exception("Error fetching order details")
        return jsonify({'error': "Error fetching order details"})


@admin_bp.route('/updateorderstatus', methods=['POST'])
@admin_login_required
def update_order_status():
    try:
        order_id = form_int('orderId')
        if order_id is None:
            raise ValidationError("Order id is required")
        dashboard.update_order_status(get_db(), order_id, request.form.get('status'))
    except RestaurantError as e:
        return jsonify({'success': False, 'message': e.message})
    except Exception:
        logger.exception("Error updating order status")
        return jsonify({'success': False, 'message': "Error updating order status"})
    return jsonify({'success': True})


# ---------- Catalog management ----------

def run_catalog_action(action, success_message, endpoint):
    """Run a catalog write, flash the outcome and redirect back to the list."""
    try:
        action()
        flash(success_message, 'success')
    except RestaurantError as e:
        flash(e.message, 'error')
    except Exception:
        logger.exception(f"Error in {endpoint}")
        flash("Unexpected error, please try again", 'error')
    return redirect(url_for(endpoint))


@admin_bp.route('/categories')
@admin_login_required
def categories_page():
    return render_template('admin_categories.html', categories=catalog.list_categories(get_db()))


@admin_bp.route('/addcategory', methods=['POST'])
@admin_login_required
def add_category():
    return run_catalog_action(
        lambda: catalog.add_category(get_db(), request.form.get('categoryName')),
        "Category added successfully!",
        'admin.categories_page',
    )


@admin_bp.route('/updatecategory', methods=['POST'])
@admin_login_required
def update_category():
    return run_catalog_action(
        lambda: catalog.update_category(
            get_db(),
            form_int('categoryId'),
            request.form.get('categoryName'),
            form_flag('isActive'),
        ),
        "Category updated successfully!",
        'admin.categories_page',
    )


@admin_bp.route('/menuitems')
@admin_login_required
def menu_items_page():
    db = get_db()
    return render_template(
        'admin_menu_items.html',
        menu_items=catalog.list_menu_items(db),
        categories=catalog.list_categories(db, active_only=True),
    )


@admin_bp.route('/addmenuitem', methods=['POST'])
@admin_login_required
def add_menu_item():
    return run_catalog_action(
        lambda: catalog.add_menu_item(
            get_db(),
            request.form.get('name'),
            request.form.get('price'),
            request.form.get('categoryId'),
            request.form.get('imageUrl', ''),
        ),
        "Menu item added successfully!",
        'admin.menu_items_page',
    )


@admin_bp.route('/updatemenuitem', methods=['POST'])
@admin_login_required
def update_menu_item():
    return run_catalog_action(
        lambda: catalog.update_menu_item(
            get_db(),
            form_int('menuItemId'),
            request.form.get('name'),
            request.form.get('price'),
            request.form.get('categoryId'),
            request.form.get('imageUrl', ''),
            form_flag('isActive'),
        ),
        "Menu item updated successfully!",
        'admin.menu_items_page',
    )


@admin_bp.route('/tables')
@admin_login_required
def tables_page():
    return render_template('admin_tables.html', tables=catalog.list_tables(get_db()))


@admin_bp.route('/addtable', methods=['POST'])
@admin_login_required
def add_table():
    return run_catalog_action(
        lambda: catalog.add_table(get_db(), request.form.get('tableCode')),
        "Table added successfully!",
        'admin.tables_page',
    )


@admin_bp.route('/updatetable', methods=['POST'])
@admin_login_required
def update_table():
    return run_catalog_action(
        lambda: catalog.set_table_active(get_db(), form_int('tableId'), form_flag('isActive')),
        "Table updated successfully!",
        'admin.tables_page',
    )


# ---------- Settings ----------

@admin_bp.route('/settings')
@admin_login_required
def settings_page():
    return render_template('admin_settings.html')


@admin_bp.route('/getsettings')
@admin_login_required
def get_settings_data():
    return jsonify(get_settings().as_dict())


def update_settings(group, read_values, success_message):
    try:
        get_settings().update(group, read_values())
        flash(success_message, 'success')
    except (RestaurantError, KeyError) as e:
        logger.warning(f"Rejected {group} settings update: {e}")
        flash(f"Error updating {group} settings", 'error')
    return redirect(url_for('admin.settings_page'))


@admin_bp.route('/updaterestaurantinfo', methods=['POST'])
@admin_login_required
def update_restaurant_info():
    return update_settings(
        'restaurant',
        lambda: {
            key: request.form.get(key, '').strip()
            for key in ('restaurantName', 'restaurantAddress', 'restaurantPhone', 'restaurantEmail')
        },
        "Restaurant information updated successfully!",
    )


@admin_bp.route('/updatesystemsettings', methods=['POST'])
@admin_login_required
def update_system_settings():
    def read_values():
        values = {key: form_flag(key) for key in ('notifications', 'autoBackup', 'maintenanceMode')}
        for key in ('currency', 'timezone', 'language'):
            if request.form.get(key):
                values[key] = request.form[key].strip()
        return values

    return update_settings('system', read_values, "System settings updated successfully!")


@admin_bp.route('/updatesecuritysettings', methods=['POST'])
@admin_login_required
def update_security_settings():
    def read_values():
        values = {key: form_flag(key) for key in ('twoFactorAuth', 'passwordExpiry')}
        for key in ('sessionTimeout', 'maxLoginAttempts'):
            number = form_int(key)
            if number is not None:
                if number <= 0:
                    raise ValidationError(f"{key} must be positive")
                values[key] = number
        return values

    return update_settings('security', read_values, "Security settings updated successfully!")
