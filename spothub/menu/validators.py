"""
spothub/menu/validators.py
--------------------------
Pure-Python validation for the admin menu-item edit form.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.

Only the fields present in the submitted data are checked, so a partial
edit (e.g. just stock_quantity) is valid on its own.
"""
from decimal import Decimal, InvalidOperation

from spothub.menu.models import CATEGORIES

_TRUE = ('1', 'true', 'on', 'yes', True)


def validate_menu_item_form(form_data: dict) -> dict:
    errors = {}

    # ── name ─────────────────────────────────────────────────────
    if 'name' in form_data:
        name = str(form_data.get('name') or '').strip()
        if not name:
            errors['name'] = 'Name is required.'
        elif len(name) > 120:
            errors['name'] = 'Name must be 120 characters or fewer.'

    # ── price ─────────────────────────────────────────────────────
    if 'price' in form_data:
        try:
            price = Decimal(str(form_data.get('price')).strip())
            if price < 0:
                errors['price'] = 'Price cannot be negative.'
        except InvalidOperation:
            errors['price'] = 'Price must be a valid number.'

    # ── category ─────────────────────────────────────────────────
    if 'category' in form_data and form_data.get('category') not in CATEGORIES:
        errors['category'] = 'Unknown category.'

    # ── stock_quantity / min_stock_alert ─────────────────────────
    for field, label in (('stock_quantity', 'Stock'), ('min_stock_alert', 'Low-stock alert')):
        if field not in form_data:
            continue
        try:
            value = int(str(form_data.get(field)).strip())
            if value < 0:
                errors[field] = f'{label} cannot be negative.'
        except ValueError:
            errors[field] = f'{label} must be a whole number.'

    return errors


def parse_menu_item_form(form_data: dict) -> dict:
    """
    Convert validated raw values to column types.
    Call only after validate_menu_item_form returns no errors.
    """
    parsed = {}
    if 'name' in form_data:
        parsed['name'] = str(form_data['name']).strip()
    if 'description' in form_data:
        parsed['description'] = str(form_data['description'] or '').strip()[:255]
    if 'price' in form_data:
        parsed['price'] = Decimal(str(form_data['price']).strip())
    if 'category' in form_data:
        parsed['category'] = form_data['category']
    if 'stock_quantity' in form_data:
        parsed['stock_quantity'] = int(str(form_data['stock_quantity']).strip())
    if 'min_stock_alert' in form_data:
        parsed['min_stock_alert'] = int(str(form_data['min_stock_alert']).strip())
    if 'is_available' in form_data:
        parsed['is_available'] = form_data['is_available'] in _TRUE
    return parsed
