"""
spothub/orders/cart.py
----------------------
Stateless helpers for the staff POS cart kept in the Flask session.

Session layout:
    'cart': {
        "<menu_item_id_str>": {
            "name":     str,
            "price":    str,   ← display only; create_order re-reads the catalogue
            "quantity": int
        },
        ...
    }
    'cart_wallet_id':  int | None   ← client wallet the order will charge
    'pending_order':   str | None   ← order id awaiting client confirmation

While an order is pending the cart is locked: edits are refused until the
order reaches a terminal state or the staff member clears the cart.
"""
from decimal import Decimal
from flask import session


CART_KEY    = 'cart'
WALLET_KEY  = 'cart_wallet_id'
PENDING_KEY = 'pending_order'


# ── Read ──────────────────────────────────────────────────────────

def get_cart() -> dict:
    return session.get(CART_KEY, {})


def get_cart_wallet_id():
    return session.get(WALLET_KEY)


def get_pending_order_id():
    return session.get(PENDING_KEY)


def cart_lines(cart: dict) -> list:
    """[(menu_item_id, quantity), ...] in a stable order, as create_order expects."""
    return sorted((int(pid), item['quantity']) for pid, item in cart.items())


# ── Write ─────────────────────────────────────────────────────────

def add_to_cart(menu_item) -> None:
    """Add one unit of `menu_item`; increments if already present."""
    cart = get_cart()
    key  = str(menu_item.id)

    if key in cart:
        cart[key]['quantity'] += 1
    else:
        cart[key] = {
            'name':     menu_item.name,
            'price':    str(menu_item.price),   # Decimal → str for JSON safety
            'quantity': 1,
        }

    session[CART_KEY] = cart
    session.modified  = True


def remove_one(menu_item_id: int) -> None:
    """Take one unit off; drops the line when it reaches zero."""
    cart = get_cart()
    key  = str(menu_item_id)
    if key in cart:
        if cart[key]['quantity'] > 1:
            cart[key]['quantity'] -= 1
        else:
            cart.pop(key)
    session[CART_KEY] = cart
    session.modified  = True


def remove_line(menu_item_id: int) -> None:
    """Drop the whole line regardless of quantity."""
    cart = get_cart()
    cart.pop(str(menu_item_id), None)
    session[CART_KEY] = cart
    session.modified  = True


def set_cart_wallet(wallet_id) -> None:
    session[WALLET_KEY] = wallet_id
    session.modified    = True


def set_pending_order(order_id) -> None:
    session[PENDING_KEY] = order_id
    session.modified     = True


def clear_cart() -> None:
    """Empty the cart, detach the client wallet and release the lock."""
    for key in (CART_KEY, WALLET_KEY, PENDING_KEY):
        session.pop(key, None)
    session.modified = True


# ── Totals ────────────────────────────────────────────────────────

def cart_totals(cart: dict) -> dict:
    """Display total of the cart. All arithmetic in Decimal."""
    total = Decimal('0')
    items = 0
    for item in cart.values():
        total += (Decimal(item['price']) * item['quantity']).quantize(Decimal('0.01'))
        items += item['quantity']
    return {'total': total, 'items': items}
