from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import func

from feedbackhub.extensions import db
from feedbackhub.models.feedback import (
    Feedback,
    FeedbackStatus,
    allowed_sources,
    allowed_targets,
    utcnow,
)
from feedbackhub.observability import log_event
from .errors import Internal, InvalidTransition, NotFound, UnprocessableEntity

# device_info keys that are exposed as list filters
DEVICE_FILTERS = ("app_version", "os", "os_version")

CSV_COLUMNS = (
    "id", "application_id", "end_user_id", "rating", "category", "status",
    "app_version", "os", "os_version", "content", "created_at", "status_changed_at",
)


def _filtered_query(filters: Dict[str, Any]):
    q = db.select(Feedback)
    if filters.get("application_id") is not None:
        q = q.where(Feedback.application_id == filters["application_id"])
    if filters.get("status"):
        q = q.where(Feedback.status == filters["status"])
    if filters.get("category"):
        q = q.where(Feedback.category == filters["category"])
    if filters.get("rating") is not None:
        q = q.where(Feedback.rating == filters["rating"])
    for key in DEVICE_FILTERS:
        if filters.get(key):
            q = q.where(Feedback.device_info[key].as_string() == filters[key])
    if filters.get("created_after") is not None:
        q = q.where(Feedback.created_at >= filters["created_after"])
    if filters.get("created_before") is not None:
        q = q.where(Feedback.created_at < filters["created_before"])
    return q


def _ordered(q, order: Optional[str]):
    if order == "asc":
        return q.order_by(Feedback.created_at.asc(), Feedback.id.asc())
    # Inbox view: newest first
    return q.order_by(Feedback.created_at.desc(), Feedback.id.desc())


def list_feedback(filters: Dict[str, Any]) -> Tuple[List[Feedback], int]:
    """
    Return (page, total) for any combination of application, status, category,
    rating and device_info version/OS filters.
    """
    base = _filtered_query(filters)
    total = db.session.scalar(db.select(func.count()).select_from(base.subquery()))

    q = _ordered(base, filters.get("order"))
    if filters.get("limit") is not None:
        q = q.limit(filters["limit"])
    if filters.get("offset"):
        q = q.offset(filters["offset"])
    return list(db.session.execute(q).scalars()), int(total or 0)


def iter_feedback(filters: Dict[str, Any], batch_size: int = 500) -> Iterable[Feedback]:
    q = _ordered(_filtered_query(filters), filters.get("order"))
    yield from db.session.execute(q.execution_options(yield_per=batch_size)).scalars()


def get_feedback(feedback_id: int) -> Feedback:
    row = db.session.get(Feedback, feedback_id)
    if row is None:
        raise NotFound("Feedback not found")
    return row


def transition_status(feedback_id: int, new_status: str) -> Feedback:
    """
    Move a record along the triage lifecycle.

    The write is one conditional UPDATE guarded by the set of states allowed
    to reach ``new_status``; of two racing transitions, the loser sees zero
    rows updated and gets InvalidTransition instead of overwriting.
    """
    try:
        target = FeedbackStatus(new_status)
    except ValueError:
        raise UnprocessableEntity(
            {"status": "must be one of: " + ", ".join(FeedbackStatus.values())}
        )

    sources = [s.value for s in allowed_sources(target)]
    stmt = (
        db.update(Feedback)
        .where(Feedback.id == feedback_id, Feedback.status.in_(sources))
        .values(status=target.value, status_changed_at=utcnow())
    )
    try:
        result = db.session.execute(stmt)
        updated = result.rowcount
        if updated:
            db.session.commit()
        else:
            db.session.rollback()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise Internal("Could not update feedback status") from exc

    if not updated:
        current = db.session.execute(
            db.select(Feedback.status).where(Feedback.id == feedback_id)
        ).scalar_one_or_none()
        if current is None:
            raise NotFound("Feedback not found")
        raise InvalidTransition(
            f"Cannot move feedback from {current} to {target.value}",
            current_status=current,
            requested_status=target.value,
            allowed=sorted(s.value for s in allowed_targets(current)),
        )

    row = db.session.get(Feedback, feedback_id, populate_existing=True)
    log_event("status_changed", feedback_id=feedback_id, application_id=row.application_id,
              status=target.value)
    return row


def delete_feedback(feedback_id: int) -> None:
    """Administrative removal; ingestion never deletes."""
    try:
        result = db.session.execute(db.delete(Feedback).where(Feedback.id == feedback_id))
        if result.rowcount == 0:
            db.session.rollback()
            raise NotFound("Feedback not found")
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise Internal("Could not delete feedback") from exc
    log_event("feedback_deleted", feedback_id=feedback_id)


def export_csv(rows: Iterable[Feedback]) -> Iterator[str]:
    """Yield the CSV one line at a time; nothing is held beyond the current row."""
    buf = io.StringIO()
    writer = csv.writer(buf)

    def _flush() -> str:
        chunk = buf.getvalue()
        buf.seek(0)
        buf.truncate(0)
        return chunk

    writer.writerow(CSV_COLUMNS)
    yield _flush()
    for fb in rows:
        device = fb.device_info or {}
        writer.writerow([
            fb.id,
            fb.application_id,
            fb.end_user_id or "",
            fb.rating if fb.rating is not None else "",
            fb.category or "",
            fb.status,
            device.get("app_version", ""),
            device.get("os", ""),
            device.get("os_version", ""),
            fb.content or "",
            fb.created_at.isoformat() if fb.created_at else "",
            fb.status_changed_at.isoformat() if fb.status_changed_at else "",
        ])
        yield _flush()
