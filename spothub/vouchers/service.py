"""
spothub/vouchers/service.py
---------------------------
Voucher issuance and redemption.

Redemption is one transaction:

    UPDATE vouchers SET status='used' ... WHERE id=? AND status='active'
    INSERT wallet (ON CONFLICT DO NOTHING)        -- first redemption only
    UPDATE wallets SET balance = balance + value  -- same transaction
    INSERT transactions (credit)

The status UPDATE goes first and doubles as the lock: of two concurrent
redemptions of one code, only one matches `status='active'`. The loser
matches zero rows and gets AlreadyRedeemed with nothing written.
"""
from datetime import datetime
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from spothub import db
from spothub.auth.models import VOUCHER_ROLES, RoleEnum
from spothub.errors import (
    NotFound, AlreadyRedeemed, PermissionDenied, ValidationError, PersistenceError
)
from spothub.utils.transactions import atomic
from spothub.vouchers.codes import generate_voucher_code
from spothub.vouchers.models import Voucher, VoucherStatus
from spothub.wallets.service import normalize_phone, get_or_create_wallet, credit_wallet


def get_voucher(code: str) -> Voucher:
    voucher = Voucher.query.filter_by(code=(code or '').strip()).first()
    if voucher is None:
        raise NotFound('Voucher not found.')
    return voucher


def issue_voucher(staff, face_value=None) -> Voucher:
    """
    Mint one active voucher. A code collision on insert is retried with a
    fresh code; the caller only sees PersistenceError if every attempt fails.
    """
    if staff is None or not staff.has_role(VOUCHER_ROLES):
        raise PermissionDenied('Only tellers can issue vouchers.')

    if face_value is None:
        value = Decimal(str(current_app.config['VOUCHER_FACE_VALUE']))
    else:
        try:
            value = Decimal(str(face_value))
        except InvalidOperation:
            raise ValidationError('Voucher value must be a valid number.')
    if not value.is_finite() or value <= 0:
        raise ValidationError('Voucher value must be greater than zero.')

    attempts = current_app.config['VOUCHER_CODE_ATTEMPTS']
    for attempt in range(1, attempts + 1):
        voucher = Voucher(code=generate_voucher_code(), face_value=value, issued_by=staff.id)
        db.session.add(voucher)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning(
                f"Voucher code collision (attempt {attempt}/{attempts}), retrying with a new code"
            )
            continue
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error(f"Voucher insert failed: {exc}")
            raise PersistenceError() from exc

        current_app.logger.info(
            f"Voucher {voucher.code} issued by staff {staff.id} | Value: {value}"
        )
        return voucher

    current_app.logger.error(f"Voucher issue gave up after {attempts} code collisions")
    raise PersistenceError()


def redeem_voucher(code: str, phone: str):
    """Credit the voucher's face value to the wallet for `phone`. Returns the wallet."""
    phone   = normalize_phone(phone)
    voucher = get_voucher(code)
    if not voucher.is_active:
        raise AlreadyRedeemed()

    voucher_id   = voucher.id
    voucher_code = voucher.code
    value        = Decimal(str(voucher.face_value))
    currency     = current_app.config['CURRENCY']

    with atomic(f'redeem voucher {voucher_code}'):
        claimed = db.session.execute(
            update(Voucher)
            .where(Voucher.id == voucher_id, Voucher.status == VoucherStatus.active)
            .values(status=VoucherStatus.used, redeemed_phone=phone,
                    redeemed_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            current_app.logger.warning(f"Voucher {voucher_code}: lost redemption race")
            raise AlreadyRedeemed()

        wallet = get_or_create_wallet(phone)
        credit_wallet(wallet, value, f'Voucher activation - {value} {currency}',
                      voucher_id=voucher_id)

    current_app.logger.info(f"Voucher {voucher_code} redeemed by {phone} | Credit: {value}")
    return wallet


def void_voucher(staff, code: str) -> Voucher:
    """Admin-only: take an unredeemed voucher out of circulation."""
    if staff is None or not staff.has_role({RoleEnum.admin}):
        raise PermissionDenied('Only admins can void vouchers.')

    voucher = get_voucher(code)
    with atomic(f'void voucher {voucher.code}'):
        result = db.session.execute(
            update(Voucher)
            .where(Voucher.id == voucher.id, Voucher.status == VoucherStatus.active)
            .values(status=VoucherStatus.voided)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyRedeemed()

    current_app.logger.info(f"Voucher {voucher.code} voided by staff {staff.id}")
    return voucher
