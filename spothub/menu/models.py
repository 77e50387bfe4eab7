from datetime import datetime
from decimal import Decimal
from spothub import db


# Display order matches the bar's menu board
CATEGORIES = {
    'beers':     'Cervejas',
    'ciders':    'Cidras',
    'cocktails': 'Coquetéis',
    'shots':     'Shots',
    'liqueurs':  'Licores',
    'bottles':   'Garrafas',
    'food':      'Comida',
}

DEFAULT_MIN_STOCK_ALERT = 5


class MenuItem(db.Model):
    """One sellable item on the menu, with its stock counter."""
    __tablename__ = 'menu_items'

    id              = db.Column(db.Integer, primary_key=True)
    name            = db.Column(db.String(120), nullable=False, index=True)
    description     = db.Column(db.String(255), nullable=False, default='')
    price           = db.Column(db.Numeric(10, 2), nullable=False)
    category        = db.Column(db.String(20), nullable=False, index=True)
    stock_quantity  = db.Column(db.Integer, nullable=False, default=0)
    min_stock_alert = db.Column(db.Integer, nullable=False, default=DEFAULT_MIN_STOCK_ALERT)
    # Manual flag; an item can be hidden with stock left or shown at zero
    is_available    = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at      = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at      = db.Column(
        db.DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )

    __table_args__ = (
        db.CheckConstraint('stock_quantity >= 0', name='check_menu_stock_non_negative'),
        db.CheckConstraint('price >= 0', name='check_menu_price_non_negative'),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock_alert

    def to_dict(self) -> dict:
        return {
            'id':              self.id,
            'name':            self.name,
            'description':     self.description,
            'price':           str(self.price),
            'category':        self.category,
            'stock_quantity':  self.stock_quantity,
            'min_stock_alert': self.min_stock_alert,
            'is_available':    self.is_available,
            'is_low_stock':    self.is_low_stock,
        }

    def __repr__(self):
        return f"<MenuItem {self.id} {self.name!r} stock={self.stock_quantity}>"


DEMO_MENU = [
    # name, description, price, category, stock
    ('2M',              'Cerveja nacional 550ml',     Decimal('100'), 'beers',     120),
    ('Laurentina Preta', 'Cerveja preta 550ml',       Decimal('110'), 'beers',     80),
    ('Savanna Dry',     'Cidra 330ml',                Decimal('150'), 'ciders',    60),
    ('Caipirinha',      'Cachaça, lima, açúcar',      Decimal('250'), 'cocktails', 40),
    ('Mojito',          'Rum, hortelã, lima, soda',   Decimal('280'), 'cocktails', 40),
    ('Tequila',         'Shot 25ml',                  Decimal('120'), 'shots',     100),
    ('Amarula',         'Licor 50ml',                 Decimal('180'), 'liqueurs',  30),
    ('Johnnie Walker Black', 'Garrafa 750ml',         Decimal('3500'), 'bottles',  6),
    ('Prego no pão',    'Bife no pão com batata',     Decimal('350'), 'food',      25),
]


def seed_demo_menu() -> int:
    """Insert the demo catalogue items that are not present yet."""
    created = 0
    for name, description, price, category, stock in DEMO_MENU:
        if MenuItem.query.filter_by(name=name).first():
            continue
        db.session.add(MenuItem(name=name, description=description, price=price,
                                category=category, stock_quantity=stock))
        created += 1
    db.session.commit()
    return created
