from flask import Blueprint

auth = Blueprint('auth', __name__)

from spothub.auth import routes   # noqa: F401, E402
from spothub.auth import models   # noqa: F401, E402  registers the model with SQLAlchemy
