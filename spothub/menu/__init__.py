from flask import Blueprint

menu = Blueprint('menu', __name__)

from spothub.menu import routes  # noqa: F401, E402
from spothub.menu import models  # noqa: F401, E402
