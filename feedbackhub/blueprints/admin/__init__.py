from flask import Blueprint

from feedbackhub.services.errors import Unauthorized
from feedbackhub.services.policy import is_admin

bp = Blueprint("admin", __name__)


@bp.before_request
def _require_admin_token():
    if is_admin():
        return None
    raise Unauthorized()


# Import submodules so their routes register on the same bp
from . import applications  # noqa: E402,F401
from . import feedback  # noqa: E402,F401
