from flask import Blueprint

# Staff terminal
pos = Blueprint('pos', __name__)
# Client device, reached through the confirmation link
confirm = Blueprint('confirm', __name__)

from spothub.orders import routes          # noqa: F401, E402
from spothub.orders import confirm_routes  # noqa: F401, E402
from spothub.orders import models          # noqa: F401, E402
