from flask import request, jsonify

from spothub.wallets import wallets
from spothub.wallets.service import get_wallet_by_phone
from spothub.errors import NotFound

HISTORY_LIMIT = 10


@wallets.route('')
def view():
    """Wallet balance and recent history for ?phone=. Read only."""
    wallet = get_wallet_by_phone(request.args.get('phone', ''))
    if wallet is None:
        raise NotFound('No wallet found for this phone number. '
                       'Please scan a voucher QR code to activate your wallet.')

    history = wallet.transactions.limit(HISTORY_LIMIT).all()
    return jsonify({
        'wallet':       wallet.to_dict(),
        'transactions': [t.to_dict() for t in history],
    })
