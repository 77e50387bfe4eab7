import enum
from datetime import datetime
from decimal import Decimal
from spothub import db


class TransactionType(enum.Enum):
    credit = "credit"
    debit  = "debit"


class Wallet(db.Model):
    """
    Prepaid balance for one client, keyed by phone number.

    Created at the first voucher redemption for a phone. The balance is
    only ever changed together with a Transaction row, so
        balance == SUM(transactions.amount WHERE wallet_id = id)
    at every commit.
    """
    __tablename__ = 'wallets'

    id           = db.Column(db.Integer, primary_key=True)
    client_phone = db.Column(db.String(20), unique=True, nullable=False, index=True)
    balance      = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))
    activated_at = db.Column(db.DateTime, nullable=True)
    created_at   = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    transactions = db.relationship('Transaction', backref='wallet', lazy='dynamic',
                                   order_by='Transaction.id.desc()')

    __table_args__ = (
        db.CheckConstraint('balance >= 0', name='check_wallet_balance_non_negative'),
    )

    def to_dict(self) -> dict:
        return {
            'id':           self.id,
            'client_phone': self.client_phone,
            'balance':      str(self.balance),
            'activated_at': self.activated_at.isoformat() if self.activated_at else None,
        }

    def __repr__(self):
        return f"<Wallet {self.client_phone} balance={self.balance}>"


class Transaction(db.Model):
    """
    Append-only ledger entry. Credits are positive, debits negative.
    Rows are never updated or deleted.
    """
    __tablename__ = 'transactions'

    id               = db.Column(db.Integer, primary_key=True)
    wallet_id        = db.Column(db.Integer, db.ForeignKey('wallets.id'), nullable=False, index=True)
    order_id         = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=True, index=True)
    voucher_id       = db.Column(db.String(36), db.ForeignKey('vouchers.id'), nullable=True)
    amount           = db.Column(db.Numeric(12, 2), nullable=False)
    transaction_type = db.Column(db.Enum(TransactionType), nullable=False)
    description      = db.Column(db.String(255), nullable=False, default='')
    created_at       = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            'id':               self.id,
            'amount':           str(self.amount),
            'transaction_type': self.transaction_type.value,
            'description':      self.description,
            'order_id':         self.order_id,
            'created_at':       self.created_at.isoformat(),
        }

    def __repr__(self):
        return f"<Transaction {self.transaction_type.value} {self.amount} wallet={self.wallet_id}>"
