# app.py - web layer for the saree inventory: login, stock, sales, analytics
# run this file to start the server: python app.py

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from flask import Flask, g, jsonify, request, send_from_directory, current_app
from flask_login import LoginManager, login_user, logout_user, login_required, current_user

import metrics
from config import Config
from errors import InventoryError, ValidationError
from ledger import InventoryLedger, clean_images, require_money
from models import db, User
from repository import SqlRepository
from uploads import save_images

login_manager = LoginManager()

# starter stock for an empty shop
SAMPLE_SAREES = [
    dict(name='Royal Kanjivaram Bridal', type='Kanjivaram', price='12500', quantity=3),
    dict(name='Printed Cotton Daily', type='Cotton', price='1200', quantity=20),
    dict(name='Embroidered Georgette Party', type='Georgette', price='4500', quantity=8),
]


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(error='Please log in first.'), 401


def get_ledger():
    # one ledger per request, loaded from the database on first use
    if 'ledger' not in g:
        g.ledger = InventoryLedger(SqlRepository())
    return g.ledger


def _payload():
    if not request.is_json:
        return request.form.to_dict()
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON payload')
    return data


def _parse_date(name):
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f'{name} must be a date like 2025-01-31.')


def _parse_bool(raw):
    if raw is None or raw == '':
        return None
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _today():
    return datetime.now(ZoneInfo(current_app.config['REPORTING_TIMEZONE'])).date()


def _handle_inventory_error(exc):
    # store failures are already logged with their traceback by the repository
    return jsonify(error=exc.message), exc.status_code


def seed_defaults(app):
    """Creates tables, the owner login and, for a new shop, sample stock."""
    with app.app_context():
        db.create_all()

        owner = User.query.filter_by(username=app.config['ADMIN_USERNAME']).first()
        if not owner:
            owner = User(username=app.config['ADMIN_USERNAME'])
            owner.set_password(app.config['ADMIN_PASSWORD'])
            db.session.add(owner)
            db.session.commit()

        if app.config['SEED_SAMPLE_DATA']:
            ledger = InventoryLedger(SqlRepository())
            if not ledger.items:
                for sample in SAMPLE_SAREES:
                    ledger.add(auto_tags=True, **sample)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    db.init_app(app)
    login_manager.init_app(app)
    app.register_error_handler(InventoryError, _handle_inventory_error)

    @app.teardown_request
    def drop_ledger(exc):
        g.pop('ledger', None)

    register_routes(app)
    seed_defaults(app)
    return app


def register_routes(app):

    # login and logout
    @app.route('/login', methods=['POST'])
    def login():
        if current_user.is_authenticated:
            return jsonify(username=current_user.username)
        data = _payload()
        user = User.query.filter_by(username=data.get('username')).first()
        if user and user.check_password(data.get('password') or ''):
            login_user(user)
            return jsonify(username=user.username)
        return jsonify(error='Invalid username or password'), 401

    @app.route('/logout', methods=['POST'])
    @login_required
    def logout():
        logout_user()
        return jsonify(ok=True)

    # main dashboard - totals, today's profit and the latest sales
    @app.route('/')
    @login_required
    def index():
        ledger = get_ledger()
        tz = app.config['REPORTING_TIMEZONE']
        threshold = app.config['LOW_STOCK_THRESHOLD']
        return jsonify(
            total_sales=str(metrics.sales_total(ledger.sales)),
            total_profit=str(metrics.total_profit(ledger.sales)),
            total_investment=str(metrics.investment_total(ledger.purchases)),
            low_stock=len(metrics.low_stock(ledger.items, threshold)),
            today_profit=str(metrics.profit_for_day(ledger.sales, _today(), tz)),
            latest_sales=[s.to_dict() for s in metrics.recent_sales(ledger.sales, 5)],
        )

    # current stock, optionally filtered
    @app.route('/inventory')
    @login_required
    def inventory():
        args = request.args
        min_price = args.get('min_price')
        max_price = args.get('max_price')
        items = metrics.filter_items(
            get_ledger().items,
            type=args.get('type'),
            min_price=require_money('min_price', min_price) if min_price else None,
            max_price=require_money('max_price', max_price) if max_price else None,
            in_stock=_parse_bool(args.get('in_stock')),
            search=args.get('q'),
        )
        return jsonify(items=[item.to_dict() for item in items], count=len(items))

    @app.route('/sarees', methods=['POST'])
    @login_required
    def add_saree():
        data = _payload()
        images = list(clean_images(data.get('images'))) + save_images(request.files.getlist('images'))
        item = get_ledger().add(
            name=data.get('name'),
            type=data.get('type'),
            price=data.get('price'),
            quantity=data.get('quantity'),
            images=images,
            tags=data.get('tags'),
            description=data.get('description'),
            auto_tags=_parse_bool(str(data.get('auto_tags', 'true'))),
        )
        return jsonify(item.to_dict()), 201

    @app.route('/sarees/<int:item_id>', methods=['PUT'])
    @login_required
    def edit_saree(item_id):
        ledger = get_ledger()
        fields = _payload()
        # new uploads are added after the photos the saree already has
        uploaded = save_images(request.files.getlist('images'))
        if uploaded:
            current = fields['images'] if 'images' in fields else ledger.get(item_id).images
            fields['images'] = list(clean_images(current)) + uploaded
        item = ledger.update(item_id, **fields)
        return jsonify(item.to_dict())

    @app.route('/sarees/<int:item_id>', methods=['DELETE'])
    @login_required
    def delete_saree(item_id):
        get_ledger().delete(item_id)
        return jsonify(ok=True)

    # sales tracking
    @app.route('/sarees/<int:item_id>/sell', methods=['POST'])
    @login_required
    def sell_saree(item_id):
        data = _payload()
        ledger = get_ledger()
        sale = ledger.record_sale(
            item_id,
            quantity=data.get('quantity'),
            customer_name=data.get('customer_name'),
            selling_price=data.get('selling_price'),
            selected_image=data.get('image_url'),
        )
        return jsonify(sale=sale.to_dict(), remaining=ledger.get(item_id).quantity), 201

    @app.route('/sarees/<int:item_id>/restock', methods=['POST'])
    @login_required
    def restock_saree(item_id):
        data = _payload()
        ledger = get_ledger()
        purchase = ledger.restock(item_id, data.get('quantity'), data.get('unit_cost'))
        return jsonify(purchase=purchase.to_dict(), quantity=ledger.get(item_id).quantity), 201

    @app.route('/sales')
    @login_required
    def sales_history():
        limit = request.args.get('limit', 50, type=int)
        sales = metrics.recent_sales(get_ledger().sales, max(limit, 0))
        return jsonify(sales=[s.to_dict() for s in sales])

    @app.route('/sales/<int:sale_id>', methods=['PUT'])
    @login_required
    def edit_sale(sale_id):
        sale = get_ledger().edit_sale(sale_id, **_payload())
        return jsonify(sale.to_dict())

    @app.route('/sales/<int:sale_id>', methods=['DELETE'])
    @login_required
    def delete_sale(sale_id):
        get_ledger().delete_sale(sale_id)
        return jsonify(ok=True)

    # analytics
    @app.route('/analytics/profit')
    @login_required
    def profit_analytics():
        sales = get_ledger().sales
        by_type = metrics.profit_by_category(sales)
        return jsonify(
            by_type={str(k): str(v) for k, v in by_type.items()},
            total=str(metrics.total_profit(sales)),
            monthly=[
                {'month': m.month, 'profit': str(m.profit)}
                for m in metrics.monthly_profit_trend(sales, app.config['REPORTING_TIMEZONE'])
            ],
        )

    @app.route('/analytics/summary')
    @login_required
    def investment_summary():
        ledger = get_ledger()
        date_range = metrics.DateRange.from_dates(
            _parse_date('from'), _parse_date('to'), app.config['REPORTING_TIMEZONE']
        )
        return jsonify(
            total_investment=str(metrics.investment_total(ledger.purchases, date_range)),
            total_sales=str(metrics.sales_total(ledger.sales, date_range)),
        )

    @app.route('/analytics/restock')
    @login_required
    def restock_suggestions():
        ledger = get_ledger()
        candidates = metrics.restock_candidates(
            ledger.items,
            ledger.sales,
            low_stock_threshold=app.config['LOW_STOCK_THRESHOLD'],
            fast_selling_threshold=app.config['FAST_SELLING_THRESHOLD'],
            window_days=app.config['FAST_SELLING_WINDOW_DAYS'],
        )
        return jsonify(suggestions=[c.to_dict() for c in candidates])

    @app.route('/analytics/stock')
    @login_required
    def stock_analytics():
        items = get_ledger().items
        threshold = app.config['LOW_STOCK_THRESHOLD']
        return jsonify(
            by_type=[
                {'type': s.type, 'count': s.count, 'percent': s.percent}
                for s in metrics.type_distribution(items)
            ],
            levels=metrics.stock_levels(items, threshold),
            low_stock=[item.to_dict() for item in metrics.low_stock(items, threshold)],
        )

    # stored photos are public, like the links handed out on upload
    @app.route('/uploads/<path:filename>')
    def uploaded_file(filename):
        return send_from_directory(app.config['UPLOAD_FOLDER'], filename)


if __name__ == '__main__':
    create_app().run(debug=True, port=5001)
