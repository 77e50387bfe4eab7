import math

from flask import request, jsonify, current_app

from spothub import db
from spothub.orders import pos
from spothub.orders.cart import (
    get_cart, add_to_cart, remove_one, remove_line, clear_cart, cart_totals, cart_lines,
    get_cart_wallet_id, set_cart_wallet, get_pending_order_id, set_pending_order,
)
from spothub.orders.models import OrderStatus
from spothub.orders.service import (
    create_order, cancel_order, expire_order, await_settlement, get_order,
    confirmation_url, STAFF_CLEARED,
)
from spothub.menu.models import MenuItem
from spothub.wallets.models import Wallet
from spothub.wallets.service import get_wallet_by_phone
from spothub.auth.decorators import staff_required, current_staff
from spothub.auth.models import POS_ROLES
from spothub.utils.payload import request_payload
from spothub.errors import (
    NotFound, InsufficientStock, ConcurrencyConflict, AlreadyTerminal, ValidationError,
)


# ── Helpers ───────────────────────────────────────────────────────

def _cart_payload() -> dict:
    cart      = get_cart()
    totals    = cart_totals(cart)
    wallet_id = get_cart_wallet_id()
    wallet    = db.session.get(Wallet, wallet_id) if wallet_id else None
    return {
        'items':         cart,
        'total':         str(totals['total']),
        'item_count':    totals['items'],
        'wallet':        wallet.to_dict() if wallet else None,
        'pending_order': get_pending_order_id(),
    }


def _release_if_resolved(order) -> None:
    """
    Update the session cart once the order this terminal is waiting on
    is terminal: a confirmed sale empties the cart, anything else just
    unlocks it for editing.
    """
    if get_pending_order_id() != order.id or not order.is_terminal:
        return
    if order.status == OrderStatus.confirmed:
        clear_cart()
    else:
        set_pending_order(None)


def _menu_item_id(data) -> int:
    try:
        return int(data.get('menu_item_id'))
    except (TypeError, ValueError):
        raise ValidationError('menu_item_id must be a whole number.')


def _ensure_cart_unlocked() -> None:
    pending_id = get_pending_order_id()
    if not pending_id:
        return
    try:
        order = expire_order(pending_id)
    except NotFound:
        set_pending_order(None)
        return
    _release_if_resolved(order)
    if get_pending_order_id():
        raise ConcurrencyConflict(
            'An order is awaiting client confirmation. Clear the cart to cancel it.'
        )


# ── Client wallet ─────────────────────────────────────────────────

@pos.route('/wallet', methods=['POST'])
@staff_required(*POS_ROLES)
def attach_wallet():
    """Look up the client's wallet by phone and attach it to the cart."""
    _ensure_cart_unlocked()
    data   = request_payload()
    wallet = get_wallet_by_phone(data.get('phone'))
    if wallet is None:
        raise NotFound('Client wallet not found. Please ask client to scan their voucher first.')
    set_cart_wallet(wallet.id)
    return jsonify(_cart_payload())


# ── Cart ──────────────────────────────────────────────────────────

@pos.route('/cart')
@staff_required(*POS_ROLES)
def cart():
    return jsonify(_cart_payload())


@pos.route('/cart/add', methods=['POST'])
@staff_required(*POS_ROLES)
def add_item():
    _ensure_cart_unlocked()
    data = request_payload()
    item = db.session.get(MenuItem, _menu_item_id(data))
    if item is None or not item.is_available:
        raise NotFound('Menu item not found.')
    if item.stock_quantity <= 0:
        raise InsufficientStock(f'"{item.name}" is out of stock.')

    add_to_cart(item)
    return jsonify(_cart_payload())


@pos.route('/cart/remove', methods=['POST'])
@staff_required(*POS_ROLES)
def remove_item():
    """One unit off the line, or the whole line with {"all": true}."""
    _ensure_cart_unlocked()
    data = request_payload()
    if data.get('all') in (True, 'true', '1'):
        remove_line(_menu_item_id(data))
    else:
        remove_one(_menu_item_id(data))
    return jsonify(_cart_payload())


@pos.route('/cart/clear', methods=['POST'])
@staff_required(*POS_ROLES)
def clear():
    """Empty the cart. A pending order is cancelled first, never left dangling."""
    pending_id = get_pending_order_id()
    if pending_id:
        try:
            cancel_order(pending_id, reason=STAFF_CLEARED)
        except (AlreadyTerminal, NotFound):
            pass  # already resolved; nothing to cancel
    clear_cart()
    return jsonify(_cart_payload())


# ── Orders ────────────────────────────────────────────────────────

@pos.route('/orders', methods=['POST'])
@staff_required(*POS_ROLES)
def create():
    """
    Turn the cart into a pending order and hand back the confirmation
    link for the client. On any failure the cart stays editable.
    """
    _ensure_cart_unlocked()
    staff = current_staff()
    order = create_order(staff, get_cart_wallet_id(), cart_lines(get_cart()))
    set_pending_order(order.id)

    payload = order.to_dict(with_items=True)
    payload['confirmation_url'] = confirmation_url(current_app.config['PUBLIC_BASE_URL'], order.id)
    return jsonify(payload), 201


@pos.route('/orders/<order_id>')
@staff_required(*POS_ROLES)
def status(order_id):
    """Current order status. Cancels the order if its confirmation window has passed."""
    order = expire_order(order_id)
    _release_if_resolved(order)
    return jsonify(order.to_dict(with_items=True))


@pos.route('/orders/<order_id>/wait')
@staff_required(*POS_ROLES)
def wait(order_id):
    """
    Long-poll: hold the request until the client answers or `timeout`
    seconds pass (capped at ORDER_WAIT_MAX). The terminal polls this in
    a loop; the confirmation window still ends in a cancellation.
    """
    limit   = current_app.config['ORDER_WAIT_MAX']
    timeout = request.args.get('timeout', limit, type=float)
    if not math.isfinite(timeout):
        raise ValidationError('timeout must be a number of seconds.')
    timeout = min(max(timeout, 0), limit)

    get_order(order_id)
    order = await_settlement(order_id, timeout=timeout, cancel_on_timeout=False)
    order = expire_order(order.id)
    _release_if_resolved(order)
    return jsonify(order.to_dict(with_items=True))
