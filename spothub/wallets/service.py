"""
spothub/wallets/service.py
--------------------------
Balance movements and ledger checks.

credit_wallet() and debit_wallet() never commit. They are building blocks
for the voucher and settlement transactions, which call them inside
`atomic()` so the balance change, the ledger row and the caller's own
status change land together or not at all.

Balances are changed with a single UPDATE ... SET balance = balance ± x
rather than read-modify-write in Python, so two transactions touching the
same wallet serialise on the row instead of overwriting each other.
"""
import re
from datetime import datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy import update, func

from spothub import db
from spothub.errors import ValidationError, InsufficientBalance
from spothub.wallets.models import Wallet, Transaction, TransactionType

_NON_DIGITS = re.compile(r'\D')


def normalize_phone(raw) -> str:
    """Strip spaces, dashes and a leading '+'. Must leave 6–15 digits."""
    digits = _NON_DIGITS.sub('', str(raw or ''))
    if not 6 <= len(digits) <= 15:
        raise ValidationError('Please enter a valid phone number.')
    return digits


def get_wallet_by_phone(phone):
    return Wallet.query.filter_by(client_phone=normalize_phone(phone)).first()


def get_or_create_wallet(phone: str) -> Wallet:
    """
    Return the wallet for `phone`, inserting an empty one if absent.
    Runs inside the caller's transaction. The insert is ON CONFLICT DO
    NOTHING, so two first-time redemptions for one phone end up sharing
    the same row instead of one of them failing.
    """
    wallet = Wallet.query.filter_by(client_phone=phone).first()
    if wallet is not None:
        return wallet

    dialect = db.session.get_bind().dialect.name
    if dialect == 'postgresql':
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    db.session.execute(
        insert(Wallet)
        .values(client_phone=phone, balance=Decimal('0'), created_at=datetime.utcnow())
        .on_conflict_do_nothing(index_elements=['client_phone'])
    )
    return Wallet.query.filter_by(client_phone=phone).one()


def credit_wallet(wallet: Wallet, amount: Decimal, description: str,
                  voucher_id=None) -> Transaction:
    now = datetime.utcnow()
    db.session.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id)
        .values(
            balance=Wallet.balance + amount,
            activated_at=func.coalesce(Wallet.activated_at, now),
        )
        .execution_options(synchronize_session=False)
    )
    entry = Transaction(
        wallet_id        = wallet.id,
        voucher_id       = voucher_id,
        amount           = amount,
        transaction_type = TransactionType.credit,
        description      = description,
    )
    db.session.add(entry)
    return entry


def debit_wallet(wallet: Wallet, amount: Decimal, description: str,
                 order_id=None) -> Transaction:
    """
    Take `amount` from the wallet, guarded by balance >= amount in the
    UPDATE itself. Zero matched rows means the balance was spent between
    the caller's check and now.
    """
    result = db.session.execute(
        update(Wallet)
        .where(Wallet.id == wallet.id, Wallet.balance >= amount)
        .values(balance=Wallet.balance - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # callers pre-check the balance under a row lock
        current_app.logger.error(
            f"BALANCE INVARIANT: debit of {amount} on wallet {wallet.id} matched no row "
            f"(order {order_id}). Debit rejected."
        )
        raise InsufficientBalance()

    entry = Transaction(
        wallet_id        = wallet.id,
        order_id         = order_id,
        amount           = -amount,
        transaction_type = TransactionType.debit,
        description      = description,
    )
    db.session.add(entry)
    return entry


# ── Ledger checks (read only) ─────────────────────────────────────

def ledger_balance(wallet_id: int) -> Decimal:
    total = (
        db.session.query(func.coalesce(func.sum(Transaction.amount), 0))
        .filter(Transaction.wallet_id == wallet_id)
        .scalar()
    )
    return Decimal(str(total)).quantize(Decimal('0.01'))


def find_unreconciled_wallets() -> list:
    """
    Wallets whose stored balance differs from their ledger sum.
    Each mismatch is an invariant violation and is logged at ERROR.
    """
    sums = (
        db.session.query(Transaction.wallet_id, func.sum(Transaction.amount))
        .group_by(Transaction.wallet_id)
        .all()
    )
    ledger = {wallet_id: Decimal(str(total)) for wallet_id, total in sums}

    mismatches = []
    for wallet in Wallet.query.order_by(Wallet.id).all():
        expected = ledger.get(wallet.id, Decimal('0')).quantize(Decimal('0.01'))
        if Decimal(str(wallet.balance)) != expected:
            current_app.logger.error(
                f"Ledger mismatch on wallet {wallet.id} ({wallet.client_phone}): "
                f"balance={wallet.balance} ledger={expected}"
            )
            mismatches.append((wallet, expected))
    return mismatches
