from flask import Blueprint

wallets = Blueprint('wallets', __name__)

from spothub.wallets import routes  # noqa: F401, E402
from spothub.wallets import models  # noqa: F401, E402
