"""
test_menu.py — Menu catalogue, admin edits and the edit-form validator.

Run: pytest test_menu.py -v
"""
import pytest
from decimal import Decimal

from spothub import create_app, db
from spothub.auth.models import StaffMember, RoleEnum
from spothub.menu.models import MenuItem, CATEGORIES, DEMO_MENU, seed_demo_menu
from spothub.menu.validators import validate_menu_item_form, parse_menu_item_form


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        for name, phone, role in [('Ana', '840000001', RoleEnum.admin),
                                  ('Bruno', '840000003', RoleEnum.barman)]:
            member = StaffMember(name=name, phone=phone, role=role)
            member.set_password('secret')
            db.session.add(member)
        db.session.add_all([
            MenuItem(name='2M', description='Cerveja 550ml', price=Decimal('100'),
                     category='beers', stock_quantity=50),
            MenuItem(name='Mojito', price=Decimal('280'), category='cocktails', stock_quantity=3),
            MenuItem(name='Gin Tonic', price=Decimal('300'), category='cocktails',
                     stock_quantity=20, is_available=False),
        ])
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()


def login(client, phone):
    resp = client.post('/auth/login', json={'phone': phone, 'password': 'secret'})
    assert resp.status_code == 200


def item(name):
    return MenuItem.query.filter_by(name=name).one()


# ── Validator ───────────────────────────────────────────────────────

class TestMenuItemValidator:

    def test_partial_edit_is_valid(self):
        assert validate_menu_item_form({'stock_quantity': '12'}) == {}

    def test_full_edit_is_valid(self):
        form = {'name': 'Mojito', 'price': '280.00', 'category': 'cocktails',
                'stock_quantity': '10', 'min_stock_alert': '2'}
        assert validate_menu_item_form(form) == {}

    @pytest.mark.parametrize('form, field', [
        ({'name': '   '}, 'name'),
        ({'name': 'x' * 121}, 'name'),
        ({'price': '-1'}, 'price'),
        ({'price': 'cheap'}, 'price'),
        ({'category': 'wines'}, 'category'),
        ({'stock_quantity': '-3'}, 'stock_quantity'),
        ({'stock_quantity': '2.5'}, 'stock_quantity'),
        ({'min_stock_alert': 'many'}, 'min_stock_alert'),
    ])
    def test_rejects(self, form, field):
        assert field in validate_menu_item_form(form)

    def test_parse_converts_types(self):
        parsed = parse_menu_item_form({'price': ' 250.5 ', 'stock_quantity': '7',
                                       'is_available': 'false'})
        assert parsed == {'price': Decimal('250.5'), 'stock_quantity': 7, 'is_available': False}


def test_demo_menu_uses_known_categories():
    assert {row[3] for row in DEMO_MENU} <= set(CATEGORIES)


def test_seed_demo_menu_is_idempotent(app):
    first = seed_demo_menu()
    assert first == len(DEMO_MENU) - 1   # '2M' already present
    assert seed_demo_menu() == 0


# ── Routes ──────────────────────────────────────────────────────────

def test_menu_grouped_by_category(app):
    data = app.test_client().get('/menu/').get_json()
    assert [c['id'] for c in data['categories']] == list(CATEGORIES)
    assert [i['name'] for i in data['items']['beers']] == ['2M']
    assert [i['name'] for i in data['items']['cocktails']] == ['Mojito']
    assert data['items']['food'] == []


def test_menu_filters(app):
    client = app.test_client()
    data = client.get('/menu/?category=cocktails').get_json()
    assert data['items']['beers'] == []

    data = client.get('/menu/?q=cerveja').get_json()
    assert [i['name'] for i in data['items']['beers']] == ['2M']
    assert data['items']['cocktails'] == []


def test_low_stock_is_admin_only(app):
    client = app.test_client()
    login(client, '840000003')
    assert client.get('/menu/low-stock').status_code == 403

    login(client, '840000001')
    names = [i['name'] for i in client.get('/menu/low-stock').get_json()]
    assert names == ['Mojito']


def test_admin_edits_item(app):
    client = app.test_client()
    login(client, '840000001')
    mojito = item('Mojito')

    resp = client.post(f'/menu/{mojito.id}', json={'price': '300', 'stock_quantity': '40'})
    assert resp.status_code == 200
    assert resp.get_json()['is_low_stock'] is False
    assert item('Mojito').price == Decimal('300')
    assert item('Mojito').stock_quantity == 40


def test_admin_edit_validation(app):
    client = app.test_client()
    login(client, '840000001')
    mojito = item('Mojito')

    resp = client.post(f'/menu/{mojito.id}', json={'stock_quantity': '-1'})
    assert resp.status_code == 400
    assert 'stock_quantity' in resp.get_json()['fields']
    assert item('Mojito').stock_quantity == 3

    assert client.post('/menu/999', json={'price': '1'}).status_code == 404


def test_barman_cannot_edit(app):
    client = app.test_client()
    login(client, '840000003')
    resp = client.post(f"/menu/{item('2M').id}", json={'price': '1'})
    assert resp.status_code == 403
    assert item('2M').price == Decimal('100')
