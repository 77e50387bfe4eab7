import os

from spothub import create_app, db, _import_models

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

# Tables are created on boot; hosts without shell access cannot run `flask init-db`
with app.app_context():
    _import_models()
    db.create_all()

if __name__ == "__main__":
    app.run()
