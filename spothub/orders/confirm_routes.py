"""
spothub/orders/confirm_routes.py
--------------------------------
Client-device side of the confirmation handshake.

The client reaches these through <base>/confirm-order?id=<order id>.
Holding the link is not treated as proof of ownership: confirming or
rejecting requires the phone of the wallet being charged, and the
wallet balance is only shown to a caller who supplies that phone.
"""
from decimal import Decimal
from flask import request, jsonify

from spothub.orders import confirm
from spothub.orders.service import (
    expire_order, confirm_order, cancel_order, check_owner, CLIENT_REJECTED,
)
from spothub.utils.payload import request_payload


@confirm.route('')
def show():
    """
    Order lines and total. With ?phone= of the paying wallet, also the
    balance and what the wallet will hold after paying.
    """
    order   = expire_order(request.args.get('id'))
    payload = {'order': order.to_dict(with_items=True)}

    phone = request.args.get('phone')
    if phone:
        wallet = order.wallet
        check_owner(wallet, phone)
        total   = Decimal(str(order.total_amount))
        balance = Decimal(str(wallet.balance))
        payload.update({
            'balance':       str(balance),
            'balance_after': str(balance - total),
            'can_pay':       not order.is_terminal and balance >= total,
        })
    return jsonify(payload)


@confirm.route('/<order_id>/confirm', methods=['POST'])
def accept(order_id):
    data  = request_payload()
    order = confirm_order(order_id, phone=data.get('phone') or '')
    return jsonify({
        'message': 'Your order has been confirmed and payment processed.',
        'order':   order.to_dict(with_items=True),
    })


@confirm.route('/<order_id>/reject', methods=['POST'])
def reject(order_id):
    data  = request_payload()
    # an overdue order is recorded as timed out, not rejected
    expire_order(order_id)
    order = cancel_order(order_id, reason=CLIENT_REJECTED, phone=data.get('phone') or '')
    return jsonify({'message': 'Order rejected.', 'order': order.to_dict()})
