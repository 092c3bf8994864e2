from datetime import datetime, timezone

from flask import Response, current_app, jsonify, request, stream_with_context

from feedbackhub.models.feedback import FeedbackStatus
from feedbackhub.services import triage
from feedbackhub.services.errors import BadRequest
from feedbackhub.utils.validators import parse_feedback_filters
from . import bp


def _filters_from_args(paginate: bool = True) -> dict:
    cfg = current_app.config
    filters, errors = parse_feedback_filters(
        request.args,
        statuses=FeedbackStatus.values(),
        rating_min=int(cfg.get("RATING_MIN", 1)),
        rating_max=int(cfg.get("RATING_MAX", 5)),
        page_size=int(cfg.get("ADMIN_PAGE_SIZE", 50)),
        page_size_max=int(cfg.get("ADMIN_PAGE_SIZE_MAX", 500)),
    )
    if errors:
        raise BadRequest("Invalid filter parameters", fields=errors)
    if not paginate:
        filters.pop("limit", None)
        filters.pop("offset", None)
    return filters


@bp.get("/feedback")
def list_feedback():
    filters = _filters_from_args()
    items, total = triage.list_feedback(filters)
    return jsonify({
        "items": [fb.to_dict() for fb in items],
        "total": total,
        "limit": filters["limit"],
        "offset": filters["offset"],
    })


@bp.get("/feedback/export.csv")
def export_feedback_csv():
    filters = _filters_from_args(paginate=False)
    body = stream_with_context(triage.export_csv(triage.iter_feedback(filters)))
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="feedback-{stamp}.csv"'},
    )


@bp.get("/feedback/<int:feedback_id>")
def get_feedback(feedback_id: int):
    return jsonify(triage.get_feedback(feedback_id).to_dict())


@bp.post("/feedback/<int:feedback_id>/status")
def change_status(feedback_id: int):
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    new_status = payload.get("status")
    if not isinstance(new_status, str) or not new_status.strip():
        raise BadRequest("Missing 'status'", fields={"status": "is required"})
    fb = triage.transition_status(feedback_id, new_status.strip())
    return jsonify(fb.to_dict())


@bp.delete("/feedback/<int:feedback_id>")
def delete_feedback(feedback_id: int):
    triage.delete_feedback(feedback_id)
    return "", 204
