"""
test_orders.py — Order drafting: validation, price snapshots and the session cart.

Run: pytest test_orders.py -v
"""
import pytest
from decimal import Decimal

from spothub import create_app, db
from spothub.auth.models import StaffMember, RoleEnum
from spothub.errors import (
    EmptyCart, InsufficientBalance, InsufficientStock, NotFound, PermissionDenied, ValidationError,
)
from spothub.menu.models import MenuItem
from spothub.orders.cart import cart_lines, cart_totals
from spothub.orders.models import Order, OrderStatus
from spothub.orders.service import create_order, confirmation_url
from spothub.wallets.models import Wallet


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        for name, phone, role in [('Bruno', '840000003', RoleEnum.barman),
                                  ('Wanda', '840000004', RoleEnum.waiter),
                                  ('Tina', '840000002', RoleEnum.teller)]:
            member = StaffMember(name=name, phone=phone, role=role)
            member.set_password('secret')
            db.session.add(member)
        db.session.add_all([
            MenuItem(name='2M', price=Decimal('100'), category='beers', stock_quantity=10),
            MenuItem(name='Caipirinha', price=Decimal('250.50'), category='cocktails', stock_quantity=3),
            MenuItem(name='Old Stock', price=Decimal('90'), category='beers',
                     stock_quantity=10, is_available=False),
        ])
        db.session.add(Wallet(client_phone='841234567', balance=Decimal('1000')))
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


def staff(role):
    return StaffMember.query.filter_by(role=role).one()


def item(name):
    return MenuItem.query.filter_by(name=name).one()


def wallet_id():
    return Wallet.query.filter_by(client_phone='841234567').one().id


def test_order_totals_and_snapshot(app):
    beer, cocktail = item('2M'), item('Caipirinha')
    order = create_order(staff(RoleEnum.barman), wallet_id(),
                         [(beer.id, 2), (cocktail.id, 1), (beer.id, 1)])

    assert order.status == OrderStatus.pending_confirmation
    assert order.total_amount == Decimal('550.50')
    assert order.notes == 'POS Order by Bruno'
    assert [(i.menu_item_id, i.quantity) for i in order.items] == [(beer.id, 3), (cocktail.id, 1)]
    assert order.items[1].unit_price == Decimal('250.50')

    cocktail.price = Decimal('300')
    db.session.commit()
    assert db.session.get(Order, order.id).items[1].unit_price == Decimal('250.50')


def test_drafting_does_not_touch_stock_or_balance(app):
    create_order(staff(RoleEnum.waiter), wallet_id(), [(item('2M').id, 4)])
    assert item('2M').stock_quantity == 10
    assert db.session.get(Wallet, wallet_id()).balance == Decimal('1000')


def test_order_ids_are_uuids(app):
    first  = create_order(staff(RoleEnum.barman), wallet_id(), [(item('2M').id, 1)])
    second = create_order(staff(RoleEnum.barman), wallet_id(), [(item('2M').id, 1)])
    assert first.id != second.id
    assert len(first.id) == 36


def test_teller_cannot_create_orders(app):
    with pytest.raises(PermissionDenied):
        create_order(staff(RoleEnum.teller), wallet_id(), [(item('2M').id, 1)])


def test_inactive_staff_cannot_create_orders(app):
    member = staff(RoleEnum.barman)
    member.is_active = False
    db.session.commit()
    with pytest.raises(PermissionDenied):
        create_order(member, wallet_id(), [(item('2M').id, 1)])


def test_empty_lines(app):
    with pytest.raises(EmptyCart):
        create_order(staff(RoleEnum.barman), wallet_id(), [])


@pytest.mark.parametrize('lines', [[(1, 0)], [(1, -2)], [('x', 1)], [(1, None)]])
def test_bad_lines(app, lines):
    with pytest.raises(ValidationError):
        create_order(staff(RoleEnum.barman), wallet_id(), lines)


def test_unknown_wallet(app):
    with pytest.raises(NotFound):
        create_order(staff(RoleEnum.barman), 999, [(item('2M').id, 1)])
    with pytest.raises(NotFound):
        create_order(staff(RoleEnum.barman), None, [(item('2M').id, 1)])


def test_unknown_menu_item(app):
    with pytest.raises(NotFound):
        create_order(staff(RoleEnum.barman), wallet_id(), [(999, 1)])
    assert Order.query.count() == 0


def test_unavailable_item(app):
    with pytest.raises(InsufficientStock):
        create_order(staff(RoleEnum.barman), wallet_id(), [(item('Old Stock').id, 1)])


def test_more_than_stock(app):
    with pytest.raises(InsufficientStock):
        create_order(staff(RoleEnum.barman), wallet_id(), [(item('Caipirinha').id, 4)])
    assert Order.query.count() == 0


def test_over_balance(app):
    with pytest.raises(InsufficientBalance):
        create_order(staff(RoleEnum.barman), wallet_id(), [(item('2M').id, 10), (item('Caipirinha').id, 1)])
    assert Order.query.count() == 0


def test_confirmation_url():
    assert confirmation_url('https://spot.example/', 'abc') == 'https://spot.example/confirm-order?id=abc'


def test_cart_helpers():
    cart = {
        '2': {'name': 'Caipirinha', 'price': '250.50', 'quantity': 1},
        '1': {'name': '2M', 'price': '100.00', 'quantity': 3},
    }
    assert cart_lines(cart) == [(1, 3), (2, 1)]
    totals = cart_totals(cart)
    assert totals['total'] == Decimal('550.50')
    assert totals['items'] == 4
