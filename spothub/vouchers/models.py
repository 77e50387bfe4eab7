import enum
import uuid
from datetime import datetime
from spothub import db


class VoucherStatus(enum.Enum):
    active = "active"
    used   = "used"     # terminal: redeemed into a wallet
    voided = "voided"   # terminal: cancelled by an admin


class Voucher(db.Model):
    """
    Single-use, fixed-value credential printed as a QR code.
    Redeemed exactly once into the wallet of the phone that scans it.
    """
    __tablename__ = 'vouchers'

    id             = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    code           = db.Column(db.String(64), unique=True, nullable=False, index=True)
    face_value     = db.Column(db.Numeric(12, 2), nullable=False)
    status         = db.Column(db.Enum(VoucherStatus), nullable=False,
                               default=VoucherStatus.active, index=True)
    issued_by      = db.Column(db.Integer, db.ForeignKey('staff.id'), nullable=False)
    issued_at      = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    redeemed_phone = db.Column(db.String(20), nullable=True)
    redeemed_at    = db.Column(db.DateTime, nullable=True)

    issuer = db.relationship('StaffMember', lazy='select')

    __table_args__ = (
        db.CheckConstraint('face_value > 0', name='check_voucher_value_positive'),
    )

    @property
    def is_active(self) -> bool:
        return self.status == VoucherStatus.active

    def to_dict(self) -> dict:
        return {
            'id':             self.id,
            'code':           self.code,
            'face_value':     str(self.face_value),
            'status':         self.status.value,
            'issued_at':      self.issued_at.isoformat(),
            'redeemed_phone': self.redeemed_phone,
        }

    def __repr__(self):
        return f"<Voucher {self.code!r} {self.face_value} {self.status.value}>"
