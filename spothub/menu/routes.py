from flask import request, jsonify, current_app, abort

from spothub import db
from spothub.menu import menu
from spothub.menu.models import MenuItem, CATEGORIES
from spothub.menu.validators import validate_menu_item_form, parse_menu_item_form
from spothub.auth.decorators import admin_required, current_staff
from spothub.utils.payload import request_payload


@menu.route('/')
def index():
    """Available items grouped by category. Optional ?category= and ?q= filters."""
    query = MenuItem.query.filter_by(is_available=True)

    category = request.args.get('category', '').strip()
    if category:
        query = query.filter(MenuItem.category == category)

    q = request.args.get('q', '').strip()
    if q:
        query = query.filter(
            (MenuItem.name.ilike(f'%{q}%')) |
            (MenuItem.description.ilike(f'%{q}%'))
        )

    grouped = {key: [] for key in CATEGORIES}
    for item in query.order_by(MenuItem.name).all():
        grouped.setdefault(item.category, []).append(item.to_dict())

    return jsonify({
        'categories': [{'id': key, 'name': label} for key, label in CATEGORIES.items()],
        'items':      grouped,
    })


@menu.route('/low-stock')
@admin_required
def low_stock():
    items = (
        MenuItem.query
        .filter(MenuItem.stock_quantity <= MenuItem.min_stock_alert)
        .order_by(MenuItem.stock_quantity, MenuItem.name)
        .all()
    )
    return jsonify([item.to_dict() for item in items])


@menu.route('/<int:item_id>', methods=['POST'])
@admin_required
def edit_item(item_id):
    """Admin edit of price, stock, low-stock threshold and availability."""
    item = db.session.get(MenuItem, item_id)
    if item is None:
        abort(404)

    data   = request_payload()
    errors = validate_menu_item_form(data)
    if errors:
        return jsonify({'error': 'validation_error', 'fields': errors}), 400

    changes = parse_menu_item_form(data)
    for field, value in changes.items():
        setattr(item, field, value)
    db.session.commit()

    current_app.logger.info(
        f"Menu item {item.id} edited by staff {current_staff().id}: {sorted(changes)}"
    )
    return jsonify(item.to_dict())
