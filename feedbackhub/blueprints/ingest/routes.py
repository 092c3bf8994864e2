from flask import current_app, jsonify, request

from . import bp

API_KEY_HEADER = "X-API-Key"


@bp.post("/feedback")
def submit_feedback():
    """
    Mobile clients → /api/v1/feedback
    Key in X-API-Key; the owning application is derived from it, never from the body.
    """
    service = current_app.extensions["feedbackhub.ingestion"]
    fb = service.submit(
        request.headers.get(API_KEY_HEADER),
        request.get_data(cache=False, as_text=False),
    )
    return jsonify({
        "id": fb.id,
        "status": fb.status,
        "created_at": fb.created_at.isoformat() if fb.created_at else None,
    }), 201
