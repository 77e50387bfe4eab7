import enum
import uuid
from datetime import datetime
from decimal import Decimal
from spothub import db


class OrderStatus(enum.Enum):
    pending_confirmation = "pending_confirmation"
    confirmed            = "confirmed"   # terminal: settled
    cancelled            = "cancelled"   # terminal: rejected, timed out or cleared


TERMINAL_STATUSES = frozenset({OrderStatus.confirmed, OrderStatus.cancelled})


class Order(db.Model):
    """
    A staff-built order waiting for (or past) the client's confirmation.

    The id is a random UUID because it travels in the confirmation link
    handed to the client device.
    """
    __tablename__ = 'orders'

    id               = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    wallet_id        = db.Column(db.Integer, db.ForeignKey('wallets.id'), nullable=False, index=True)
    staff_id         = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False)
    total_amount     = db.Column(db.Numeric(12, 2), nullable=False)
    status           = db.Column(db.Enum(OrderStatus), nullable=False,
                                 default=OrderStatus.pending_confirmation, index=True)
    client_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    notes            = db.Column(db.String(255), nullable=False, default='')
    cancel_reason    = db.Column(db.String(40), nullable=True)
    created_at       = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    resolved_at      = db.Column(db.DateTime, nullable=True)

    # ── Relationships ─────────────────────────────────────────────
    wallet = db.relationship('Wallet', lazy='select')
    staff  = db.relationship('StaffMember', lazy='select')
    items  = db.relationship('OrderItem', backref='order', lazy='select',
                             cascade='all, delete-orphan', order_by='OrderItem.id')

    __table_args__ = (
        db.CheckConstraint('total_amount >= 0', name='check_order_total_non_negative'),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self, with_items=False) -> dict:
        data = {
            'id':               self.id,
            'wallet_id':        self.wallet_id,
            'staff_id':         self.staff_id,
            'total_amount':     str(self.total_amount),
            'status':           self.status.value,
            'client_confirmed': self.client_confirmed,
            'notes':            self.notes,
            'cancel_reason':    self.cancel_reason,
            'created_at':       self.created_at.isoformat(),
            'resolved_at':      self.resolved_at.isoformat() if self.resolved_at else None,
        }
        if with_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self):
        return f"<Order {self.id} {self.total_amount} {self.status.value}>"


class OrderItem(db.Model):
    """
    One line of an Order.
    Stores a snapshot of the unit price at the time the order was built;
    later menu price edits don't alter the order.
    """
    __tablename__ = 'order_items'

    id           = db.Column(db.Integer, primary_key=True)
    order_id     = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=False, index=True)
    menu_item_id = db.Column(db.Integer, db.ForeignKey('menu_items.id'), nullable=False)
    quantity     = db.Column(db.Integer, nullable=False)
    unit_price   = db.Column(db.Numeric(10, 2), nullable=False)   # price snapshot
    total_price  = db.Column(db.Numeric(12, 2), nullable=False)   # quantity × unit_price

    menu_item = db.relationship('MenuItem', lazy='select')

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='check_order_item_qty_positive'),
    )

    def to_dict(self) -> dict:
        return {
            'menu_item_id': self.menu_item_id,
            'name':         self.menu_item.name if self.menu_item else None,
            'quantity':     self.quantity,
            'unit_price':   str(self.unit_price),
            'total_price':  str(self.total_price),
        }

    def __repr__(self):
        return f"<OrderItem order={self.order_id} item={self.menu_item_id} qty={self.quantity}>"
