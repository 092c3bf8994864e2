import hmac
from functools import wraps

from flask import current_app
from flask_login import UserMixin, current_user

from feedbackhub.extensions import login_manager
from .errors import Unauthorized


class AdminPrincipal(UserMixin):
    """The operator behind the admin bearer token. Never stored, never put in a session."""

    id = "admin"

    def get_id(self) -> str:
        return self.id


@login_manager.request_loader
def load_admin_from_request(request):
    expected = current_app.config.get("ADMIN_API_TOKEN")
    if not expected:
        # explicit: if no admin token is configured, nobody gets in
        return None
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    if hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        return AdminPrincipal()
    return None


def is_admin() -> bool:
    return bool(getattr(current_user, "is_authenticated", False))


def require_admin(fn):
    @wraps(fn)
    def _wrap(*args, **kwargs):
        if not is_admin():
            raise Unauthorized()
        return fn(*args, **kwargs)
    return _wrap
