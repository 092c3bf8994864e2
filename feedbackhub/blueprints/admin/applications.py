from flask import jsonify, request

from feedbackhub.extensions import limiter
from feedbackhub.services import applications as app_service
from feedbackhub.services.errors import BadRequest
from . import bp


def _json_object() -> dict:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    return payload


@bp.get("/applications")
def list_applications():
    include_inactive = (request.args.get("include_inactive") or "true").lower() != "false"
    rows = app_service.list_applications(include_inactive=include_inactive)
    return jsonify({"items": [r.to_dict() for r in rows]})


@bp.post("/applications")
@limiter.limit("120 per minute")
def create_application():
    """
    Required: name, slug. Optional: owner_id.
    Returns the application plus ``api_key``; this is the only time the key is shown.
    """
    data = _json_object()
    row, api_key = app_service.create_application(
        data.get("name"), data.get("slug"), data.get("owner_id")
    )
    return jsonify({"application": row.to_dict(), "api_key": api_key}), 201


@bp.get("/applications/<int:app_id>")
def get_application(app_id: int):
    return jsonify(app_service.get_application(app_id).to_dict())


@bp.post("/applications/<int:app_id>/rotate-key")
@limiter.limit("30 per minute")
def rotate_key(app_id: int):
    """The previous key stops working immediately; there is no grace period."""
    row, api_key = app_service.rotate_api_key(app_id)
    return jsonify({"application": row.to_dict(), "api_key": api_key})


@bp.post("/applications/<int:app_id>/deactivate")
def deactivate(app_id: int):
    return jsonify(app_service.set_active(app_id, False).to_dict())


@bp.post("/applications/<int:app_id>/activate")
def activate(app_id: int):
    return jsonify(app_service.set_active(app_id, True).to_dict())
