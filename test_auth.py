"""
test_auth.py — Staff login, session roles and the admin CLI commands.

Run: pytest test_auth.py -v
"""
import pytest
from decimal import Decimal

from spothub import create_app, db
from spothub.auth.models import StaffMember, RoleEnum, POS_ROLES, VOUCHER_ROLES
from spothub.menu.models import MenuItem, DEMO_MENU
from spothub.orders.models import Order, OrderStatus
from spothub.orders.service import create_order
from spothub.wallets.models import Wallet


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        member = StaffMember(name='Bruno', phone='840000003', role=RoleEnum.barman)
        member.set_password('secret')
        db.session.add(member)
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


# ── Login ───────────────────────────────────────────────────────────

def test_login_and_me(client):
    resp = client.post('/auth/login', json={'phone': '840000003', 'password': 'secret'})
    assert resp.status_code == 200
    assert resp.get_json()['role'] == 'barman'

    me = client.get('/auth/me').get_json()
    assert me['name'] == 'Bruno'
    assert 'password_hash' not in me


def test_login_with_form_data(client):
    resp = client.post('/auth/login', data={'phone': '840000003', 'password': 'secret'})
    assert resp.status_code == 200


def test_wrong_password(client):
    resp = client.post('/auth/login', json={'phone': '840000003', 'password': 'nope'})
    assert resp.status_code == 401
    assert resp.get_json()['error'] == 'invalid_credentials'
    assert client.get('/auth/me').status_code == 401


def test_missing_fields(client):
    assert client.post('/auth/login', json={'phone': '840000003'}).status_code == 400


def test_inactive_staff_cannot_login(app, client):
    StaffMember.query.filter_by(phone='840000003').one().is_active = False
    db.session.commit()
    resp = client.post('/auth/login', json={'phone': '840000003', 'password': 'secret'})
    assert resp.status_code == 401


def test_logout(client):
    client.post('/auth/login', json={'phone': '840000003', 'password': 'secret'})
    assert client.post('/auth/logout').status_code == 200
    assert client.get('/auth/me').status_code == 401


def test_role_change_applies_to_live_session(app, client):
    client.post('/auth/login', json={'phone': '840000003', 'password': 'secret'})
    assert client.get('/pos/cart').status_code == 200

    StaffMember.query.filter_by(phone='840000003').one().role = RoleEnum.teller
    db.session.commit()
    assert client.get('/pos/cart').status_code == 403


def test_password_is_hashed(app):
    member = StaffMember.query.filter_by(phone='840000003').one()
    assert member.password_hash != 'secret'
    assert member.check_password('secret')
    assert not member.check_password('Secret')


def test_role_sets():
    assert RoleEnum.admin in POS_ROLES and RoleEnum.admin in VOUCHER_ROLES
    assert RoleEnum.teller not in POS_ROLES
    assert RoleEnum.barman not in VOUCHER_ROLES


# ── CLI ─────────────────────────────────────────────────────────────

def test_seed_staff_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['seed-staff', '--name', 'Tina', '--phone', '840000002',
                                 '--role', 'teller', '--password', 'pw'])
    assert result.exit_code == 0
    assert StaffMember.query.filter_by(phone='840000002').one().role == RoleEnum.teller

    result = runner.invoke(args=['seed-staff', '--name', 'Tina', '--phone', '840000002',
                                 '--role', 'teller', '--password', 'pw'])
    assert 'already exists' in result.output


def test_seed_demo_command(app):
    result = app.test_cli_runner().invoke(args=['seed-demo'])
    assert result.exit_code == 0
    assert StaffMember.query.count() == 4
    assert MenuItem.query.count() == len(DEMO_MENU)


def test_expire_orders_command(app):
    item = MenuItem(name='2M', price=Decimal('100'), category='beers', stock_quantity=5)
    db.session.add_all([item, Wallet(client_phone='841234567', balance=Decimal('500'))])
    db.session.commit()
    barman = StaffMember.query.filter_by(phone='840000003').one()
    wallet = Wallet.query.one()
    order = create_order(barman, wallet.id, [(item.id, 1)])
    order.created_at = order.created_at.replace(year=order.created_at.year - 1)
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['expire-orders'])
    assert result.exit_code == 0
    assert '1 stale order' in result.output
    assert db.session.get(Order, order.id).status == OrderStatus.cancelled


def test_reconcile_command(app):
    runner = app.test_cli_runner()
    assert runner.invoke(args=['reconcile-wallets']).exit_code == 0

    db.session.add(Wallet(client_phone='841234567', balance=Decimal('50')))
    db.session.commit()
    result = runner.invoke(args=['reconcile-wallets'])
    assert result.exit_code == 1
    assert '841234567' in result.output
