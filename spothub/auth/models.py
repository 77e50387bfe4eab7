import enum
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from spothub import db


class RoleEnum(enum.Enum):
    teller = "teller"   # sells vouchers at the door
    barman = "barman"
    waiter = "waiter"
    admin  = "admin"


# Who may do what. Checked against the DB row, never a client-held string.
VOUCHER_ROLES = frozenset({RoleEnum.teller, RoleEnum.admin})
POS_ROLES     = frozenset({RoleEnum.barman, RoleEnum.waiter, RoleEnum.admin})


class StaffMember(db.Model):
    """A venue staff member. Logs in with phone + password."""
    __tablename__ = 'staff'

    id            = db.Column(db.Integer, primary_key=True)
    name          = db.Column(db.String(120), nullable=False)
    phone         = db.Column(db.String(20), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role          = db.Column(db.Enum(RoleEnum), nullable=False, default=RoleEnum.waiter)
    is_active     = db.Column(db.Boolean, nullable=False, default=True)
    created_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # ── Password helpers ──────────────────────────────────────────
    def set_password(self, plain_password: str) -> None:
        """Hash and store the password. Never stores plain text."""
        self.password_hash = generate_password_hash(plain_password)

    def check_password(self, plain_password: str) -> bool:
        return check_password_hash(self.password_hash, plain_password)

    # ── Convenience ───────────────────────────────────────────────
    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    def has_role(self, roles) -> bool:
        return self.is_active and self.role in roles

    def to_dict(self) -> dict:
        return {'id': self.id, 'name': self.name, 'phone': self.phone, 'role': self.role.value}

    def __repr__(self) -> str:
        return f"<StaffMember {self.phone!r} role={self.role.value!r}>"
