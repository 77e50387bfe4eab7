from flask import Blueprint

vouchers = Blueprint('vouchers', __name__)

from spothub.vouchers import routes  # noqa: F401, E402
from spothub.vouchers import models  # noqa: F401, E402
