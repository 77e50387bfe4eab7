from flask import jsonify, current_app

from spothub.vouchers import vouchers
from spothub.vouchers.codes import scan_url
from spothub.vouchers.service import get_voucher, issue_voucher, redeem_voucher, void_voucher
from spothub.auth.decorators import staff_required, current_staff
from spothub.auth.models import VOUCHER_ROLES, RoleEnum
from spothub.utils.payload import request_payload


@vouchers.route('/', methods=['POST'])
@staff_required(*VOUCHER_ROLES)
def issue():
    """Teller sells a voucher; the response carries the link to render as a QR."""
    data    = request_payload()
    voucher = issue_voucher(current_staff(), data.get('face_value'))

    payload = voucher.to_dict()
    payload['scan_url'] = scan_url(current_app.config['PUBLIC_BASE_URL'], voucher.code)
    return jsonify(payload), 201


@vouchers.route('/<code>')
def show(code):
    """Scan page lookup. No login: the code itself is the credential."""
    return jsonify(get_voucher(code).to_dict())


@vouchers.route('/<code>/redeem', methods=['POST'])
def redeem(code):
    data   = request_payload()
    wallet = redeem_voucher(code, data.get('phone'))
    return jsonify({'message': 'Voucher activated.', 'wallet': wallet.to_dict()})


@vouchers.route('/<code>/void', methods=['POST'])
@staff_required(RoleEnum.admin)
def void(code):
    voucher = void_voucher(current_staff(), code)
    return jsonify(voucher.to_dict())
