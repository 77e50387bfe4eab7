"""
spothub/orders/service.py
-------------------------
Order creation and the confirmation / settlement state machine.

    pending_confirmation ──confirm──▶ confirmed   (terminal)
            │
            └──cancel / timeout / staff clear──▶ cancelled (terminal)

Settlement (confirm_order) is one transaction:
  1. Lock the order row (SELECT … FOR UPDATE on PostgreSQL), re-check status.
  2. UPDATE orders SET status='confirmed' WHERE id=? AND status='pending_confirmation'
     is the gate: a second concurrent confirm (or a cancel) matches zero rows.
  3. UPDATE wallets SET balance = balance - total WHERE id=? AND balance >= total
  4. For each line, sorted by menu item id (deadlock-free lock order):
     UPDATE menu_items SET stock_quantity = stock_quantity - qty
        WHERE id=? AND stock_quantity >= qty
  5. INSERT the debit transaction.
Any failure rolls back all of it; nothing is ever half-applied.
"""
import math
import time
from datetime import datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy import update

from spothub import db
from spothub.auth.models import POS_ROLES
from spothub.errors import (
    NotFound, EmptyCart, ValidationError, PermissionDenied,
    AlreadyTerminal, InsufficientBalance, InsufficientStock,
)
from spothub.menu.models import MenuItem
from spothub.orders.models import Order, OrderItem, OrderStatus
from spothub.utils.transactions import atomic
from spothub.wallets.models import Wallet
from spothub.wallets.service import normalize_phone, debit_wallet

Q = Decimal('0.01')

# cancel_reason values
CLIENT_REJECTED = 'client_rejected'
TIMEOUT         = 'timeout'
STAFF_CLEARED   = 'staff_cleared'


def confirmation_url(base_url: str, order_id: str) -> str:
    """Link the client device opens to confirm or reject the order."""
    return f"{base_url.rstrip('/')}/confirm-order?id={order_id}"


def get_order(order_id) -> Order:
    order = db.session.get(Order, order_id) if order_id else None
    if order is None:
        raise NotFound('Order not found.')
    return order


def _lock_order(order_id) -> Order:
    order = (
        db.session.query(Order)
        .filter(Order.id == order_id)
        .with_for_update()
        .first()
    )
    if order is None:
        raise NotFound('Order not found.')
    return order


def check_owner(wallet: Wallet, phone) -> None:
    """`phone`, when given, must be the phone of the wallet the order charges."""
    if phone is not None and normalize_phone(phone) != wallet.client_phone:
        raise PermissionDenied('This order belongs to another wallet.')


def is_overdue(order: Order, now=None) -> bool:
    window = timedelta(seconds=current_app.config['ORDER_CONFIRMATION_TIMEOUT'])
    return (now or datetime.utcnow()) - order.created_at >= window


# ── Order Builder ─────────────────────────────────────────────────

def create_order(staff, wallet_id, lines, notes=None) -> Order:
    """
    Draft an order against `wallet_id` from `lines` = [(menu_item_id, qty), ...].

    Stock and balance checks here are advisory (the authoritative ones run
    at settlement). Unit prices are read from the catalogue now and frozen
    on the order items.
    """
    if staff is None or not staff.has_role(POS_ROLES):
        raise PermissionDenied('Only bar staff can create orders.')
    if not lines:
        raise EmptyCart()

    quantities = {}
    for menu_item_id, qty in lines:
        try:
            qty = int(qty)
            menu_item_id = int(menu_item_id)
        except (TypeError, ValueError):
            raise ValidationError('Order lines need a menu item id and a whole quantity.')
        if qty <= 0:
            raise ValidationError('Quantity must be at least 1.')
        quantities[menu_item_id] = quantities.get(menu_item_id, 0) + qty

    with atomic('create order'):
        wallet = db.session.get(Wallet, wallet_id) if wallet_id else None
        if wallet is None:
            raise NotFound('Client wallet not found. Please ask the client to scan their voucher first.')

        catalogue = {
            item.id: item
            for item in MenuItem.query.filter(MenuItem.id.in_(list(quantities))).all()
        }

        total = Decimal('0')
        order_items = []
        for menu_item_id in sorted(quantities):
            item = catalogue.get(menu_item_id)
            qty  = quantities[menu_item_id]
            if item is None:
                raise NotFound(f'Menu item {menu_item_id} not found.')
            if not item.is_available:
                raise InsufficientStock(f'"{item.name}" is not available.')
            if item.stock_quantity < qty:
                raise InsufficientStock(
                    f'Insufficient stock for "{item.name}". '
                    f'Available: {item.stock_quantity}, requested: {qty}.'
                )

            unit_price = Decimal(str(item.price))
            line_total = (unit_price * qty).quantize(Q)
            total += line_total
            order_items.append(OrderItem(
                menu_item_id = menu_item_id,
                quantity     = qty,
                unit_price   = unit_price,
                total_price  = line_total,
            ))

        if Decimal(str(wallet.balance)) < total:
            raise InsufficientBalance()

        order = Order(
            wallet_id    = wallet.id,
            staff_id     = staff.id,
            total_amount = total,
            notes        = notes or f'POS Order by {staff.name}',
            items        = order_items,
        )
        db.session.add(order)

    current_app.logger.info(
        f"Order {order.id} created by staff {staff.id} for wallet {wallet_id} | Total: {total}"
    )
    return order


# ── Settlement Coordinator ────────────────────────────────────────

def confirm_order(order_id, phone=None) -> Order:
    """
    Client accepts the order: debit, stock, ledger and status in one unit.

    `phone`, when given, must be the phone of the wallet being charged; the
    confirmation link on its own is not proof of ownership.
    """
    currency = current_app.config['CURRENCY']

    order = get_order(order_id)
    if not order.is_terminal and is_overdue(order):
        expire_order(order_id)
        raise AlreadyTerminal('This order has expired.')

    with atomic(f'settle order {order_id}'):
        order = _lock_order(order_id)
        if order.status != OrderStatus.pending_confirmation:
            raise AlreadyTerminal()

        wallet = (
            db.session.query(Wallet)
            .filter(Wallet.id == order.wallet_id)
            .with_for_update()
            .first()
        )
        if wallet is None:
            raise NotFound('Wallet not found.')
        check_owner(wallet, phone)

        total = Decimal(str(order.total_amount))
        if Decimal(str(wallet.balance)) < total:
            raise InsufficientBalance()

        lines = sorted((item.menu_item_id, item.quantity) for item in order.items)

        claimed = db.session.execute(
            update(Order)
            .where(Order.id == order_id,
                   Order.status == OrderStatus.pending_confirmation)
            .values(status=OrderStatus.confirmed, client_confirmed=True,
                    resolved_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            current_app.logger.warning(f"Order {order_id}: lost settlement race")
            raise AlreadyTerminal()

        debit_wallet(wallet, total, f'Order payment - {total} {currency}', order_id=order_id)

        for menu_item_id, qty in lines:
            result = db.session.execute(
                update(MenuItem)
                .where(MenuItem.id == menu_item_id, MenuItem.stock_quantity >= qty)
                .values(stock_quantity=MenuItem.stock_quantity - qty)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current_app.logger.error(
                    f"STOCK INVARIANT: settling order {order_id} would take menu item "
                    f"{menu_item_id} below zero (qty {qty}). Settlement rejected."
                )
                raise InsufficientStock('Not enough stock left to settle this order.')

    current_app.logger.info(f"Order {order_id} confirmed | Debit: {total} from wallet {wallet.id}")
    return get_order(order_id)


def cancel_order(order_id, reason=CLIENT_REJECTED, phone=None) -> Order:
    """
    pending_confirmation → cancelled. No ledger or stock effect.
    `phone` is checked against the order's wallet as in confirm_order.
    """
    with atomic(f'cancel order {order_id}'):
        order = _lock_order(order_id)
        if order.status != OrderStatus.pending_confirmation:
            raise AlreadyTerminal()
        if phone is not None:
            check_owner(db.session.get(Wallet, order.wallet_id), phone)

        result = db.session.execute(
            update(Order)
            .where(Order.id == order_id,
                   Order.status == OrderStatus.pending_confirmation)
            .values(status=OrderStatus.cancelled, client_confirmed=False,
                    resolved_at=datetime.utcnow(), cancel_reason=reason)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyTerminal()

    current_app.logger.info(f"Order {order_id} cancelled ({reason})")
    return get_order(order_id)


def expire_order(order_id, now=None) -> Order:
    """Cancel with reason 'timeout' if still pending past the confirmation window."""
    order = get_order(order_id)
    if order.is_terminal or not is_overdue(order, now):
        return order
    try:
        return cancel_order(order_id, reason=TIMEOUT)
    except AlreadyTerminal:
        # settled by the client in the meantime
        return get_order(order_id)


def await_settlement(order_id, timeout=None, interval=None, cancel_on_timeout=True,
                     sleep=time.sleep, clock=time.monotonic) -> Order:
    """
    Staff-side wait for the client's answer.

    Re-reads the order every `interval` seconds until it is terminal or
    `timeout` seconds have passed (default: the full confirmation window).
    When the wait runs out and `cancel_on_timeout` is set, the order is
    cancelled with reason 'timeout'; if the client confirmed at that same
    moment the confirmed order is returned instead.
    """
    config = current_app.config
    if timeout is None:
        timeout = config['ORDER_CONFIRMATION_TIMEOUT']
    if interval is None:
        interval = config['ORDER_POLL_INTERVAL']
    if not (math.isfinite(timeout) and math.isfinite(interval)):
        raise ValidationError('Wait timeout and interval must be finite numbers of seconds.')

    deadline = clock() + timeout
    while True:
        # end the read snapshot so commits from the client device are visible
        db.session.rollback()
        order = get_order(order_id)
        if order.is_terminal:
            return order
        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))

    if not cancel_on_timeout:
        return order
    try:
        return cancel_order(order_id, reason=TIMEOUT)
    except AlreadyTerminal:
        return get_order(order_id)


def expire_stale_orders(now=None) -> int:
    """Cancel every pending order past its confirmation window. Returns the count."""
    now    = now or datetime.utcnow()
    cutoff = now - timedelta(seconds=current_app.config['ORDER_CONFIRMATION_TIMEOUT'])
    stale  = [
        order_id for (order_id,) in
        db.session.query(Order.id)
        .filter(Order.status == OrderStatus.pending_confirmation,
                Order.created_at <= cutoff)
        .all()
    ]

    cancelled = 0
    for order_id in stale:
        try:
            cancel_order(order_id, reason=TIMEOUT)
            cancelled += 1
        except AlreadyTerminal:
            continue
    if cancelled:
        current_app.logger.info(f"Expired {cancelled} pending order(s)")
    return cancelled
