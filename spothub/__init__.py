import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory — creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from spothub.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Blueprints ────────────────────────────────────────────────
    from spothub.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint, url_prefix='/auth')

    from spothub.menu import menu as menu_blueprint
    app.register_blueprint(menu_blueprint, url_prefix='/menu')

    from spothub.vouchers import vouchers as vouchers_blueprint
    app.register_blueprint(vouchers_blueprint, url_prefix='/vouchers')

    from spothub.wallets import wallets as wallets_blueprint
    app.register_blueprint(wallets_blueprint, url_prefix='/wallet')

    from spothub.orders import pos as pos_blueprint, confirm as confirm_blueprint
    app.register_blueprint(pos_blueprint, url_prefix='/pos')
    app.register_blueprint(confirm_blueprint, url_prefix='/confirm-order')

    # ── Error Handlers ────────────────────────────────────────────
    from spothub.errors import HubError

    @app.errorhandler(HubError)
    def hub_error(e):
        app.logger.warning(f"{e.code}: {e.message}")
        return jsonify(e.to_dict()), e.http_status

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({'error': 'forbidden', 'message': 'Access denied.'}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'not_found', 'message': 'Resource not found.'}), 404

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({'error': 'server_error', 'message': 'Internal server error.'}), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    # ── ProxyFix for HTTPS termination ──
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        _import_models()
        db.create_all()
        click.echo('✅  Database tables created.')

    @app.cli.command('seed-staff')
    @click.option('--name',  prompt='Full name', help='Staff member name')
    @click.option('--phone', prompt='Phone',     help='Login phone number')
    @click.option('--role',  prompt='Role',
                  type=click.Choice(['teller', 'barman', 'waiter', 'admin']))
    @click.option('--password', prompt=True, hide_input=True,
                  confirmation_prompt=True, help='Login password')
    def seed_staff(name, phone, role, password):
        """Create a staff member."""
        from spothub.auth.models import StaffMember, RoleEnum

        if StaffMember.query.filter_by(phone=phone).first():
            click.echo(f'⚠️  Staff member with phone "{phone}" already exists.')
            return

        member = StaffMember(name=name, phone=phone, role=RoleEnum(role))
        member.set_password(password)
        db.session.add(member)
        db.session.commit()
        click.echo(f'✅  {role.capitalize()} "{name}" created successfully.')

    @app.cli.command('seed-menu')
    def seed_menu():
        """Populate the menu catalogue with the demo drinks list."""
        from spothub.menu.models import seed_demo_menu
        _import_models()
        db.create_all()
        created = seed_demo_menu()
        click.echo(f'✅  {created} menu items added.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate database with demo staff and menu."""
        from spothub.auth.models import StaffMember, RoleEnum
        from spothub.menu.models import seed_demo_menu

        click.echo('🌱 Seeding demo data...')
        _import_models()
        db.create_all()

        demo_staff = [
            ('Admin',  '840000001', RoleEnum.admin),
            ('Teller', '840000002', RoleEnum.teller),
            ('Barman', '840000003', RoleEnum.barman),
            ('Waiter', '840000004', RoleEnum.waiter),
        ]
        for name, phone, role in demo_staff:
            if not StaffMember.query.filter_by(phone=phone).first():
                member = StaffMember(name=name, phone=phone, role=role)
                member.set_password('demo123')
                db.session.add(member)
        db.session.commit()
        click.echo('✅ Staff created (password demo123).')

        created = seed_demo_menu()
        click.echo(f'✅ {created} menu items seeded.')
        click.echo('✅ Demo seed complete.')

    @app.cli.command('expire-orders')
    def expire_orders():
        """Cancel pending orders whose confirmation window has passed."""
        from spothub.orders.service import expire_stale_orders
        count = expire_stale_orders()
        click.echo(f'✅  {count} stale order(s) cancelled.')

    @app.cli.command('reconcile-wallets')
    def reconcile_wallets():
        """Compare every wallet balance with the sum of its ledger."""
        from spothub.wallets.service import find_unreconciled_wallets
        mismatches = find_unreconciled_wallets()
        if not mismatches:
            click.echo('✅  All wallets reconcile with their ledger.')
            return
        click.echo(f'{"Wallet":<8} {"Phone":<16} {"Balance":>12} {"Ledger":>12}')
        click.echo('─' * 52)
        for wallet, ledger in mismatches:
            click.echo(f'{wallet.id:<8} {wallet.client_phone:<16} {wallet.balance:>12} {ledger:>12}')
        raise SystemExit(1)


def _import_models():
    """Register every model with db.metadata before create_all()."""
    import spothub.auth.models      # noqa: F401
    import spothub.menu.models      # noqa: F401
    import spothub.vouchers.models  # noqa: F401
    import spothub.wallets.models   # noqa: F401
    import spothub.orders.models    # noqa: F401
