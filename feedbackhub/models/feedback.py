from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import func, CheckConstraint
from feedbackhub.extensions import db


class FeedbackStatus(str, Enum):
    """Triage lifecycle. PENDING is initial; RESOLVED and IGNORED are terminal."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    IGNORED = "ignored"

    @classmethod
    def values(cls) -> tuple:
        return tuple(s.value for s in cls)


TRANSITIONS = {
    FeedbackStatus.PENDING: frozenset(
        {FeedbackStatus.IN_PROGRESS, FeedbackStatus.RESOLVED, FeedbackStatus.IGNORED}
    ),
    FeedbackStatus.IN_PROGRESS: frozenset({FeedbackStatus.RESOLVED, FeedbackStatus.IGNORED}),
    FeedbackStatus.RESOLVED: frozenset(),
    FeedbackStatus.IGNORED: frozenset(),
}


def allowed_targets(src: FeedbackStatus) -> frozenset:
    return TRANSITIONS[FeedbackStatus(src)]


def allowed_sources(dst: FeedbackStatus) -> frozenset:
    dst = FeedbackStatus(dst)
    return frozenset(src for src, targets in TRANSITIONS.items() if dst in targets)


def can_transition(src: FeedbackStatus, dst: FeedbackStatus) -> bool:
    return FeedbackStatus(dst) in allowed_targets(src)


def is_terminal(status: FeedbackStatus) -> bool:
    return not allowed_targets(status)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Keep simple text+CHECK for the status column (no DB enum migration pain)
_STATUS_CHECK = "status IN ({})".format(",".join(f"'{v}'" for v in FeedbackStatus.values()))


class Feedback(db.Model):
    __tablename__ = "feedback"

    id = db.Column(db.Integer, primary_key=True)
    application_id = db.Column(
        db.Integer,
        db.ForeignKey("applications.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    end_user_id = db.Column(db.String(255), nullable=True)
    rating = db.Column(db.Integer, nullable=True)
    category = db.Column(db.String(32), nullable=True, index=True)
    content = db.Column(db.Text, nullable=True)
    device_info = db.Column(db.JSON, nullable=False, default=dict)
    # "metadata" is reserved on declarative models; the wire name stays "metadata"
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)

    status = db.Column(db.String(20), nullable=False, default=FeedbackStatus.PENDING.value)
    status_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    # Python-side default; stored values share the format of created_after/before bounds
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)

    application = db.relationship("Application", back_populates="feedback")

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="ck_feedback_status_valid"),
        db.Index("ix_feedback_app_created_at", "application_id", "created_at"),
        db.Index("ix_feedback_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Feedback id={self.id} app={self.application_id} status={self.status!r}>"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            application_id=self.application_id,
            end_user_id=self.end_user_id,
            rating=self.rating,
            category=self.category,
            content=self.content,
            device_info=self.device_info or {},
            metadata=self.meta or {},
            status=self.status,
            status_changed_at=self.status_changed_at.isoformat() if self.status_changed_at else None,
            created_at=self.created_at.isoformat() if self.created_at else None,
        )
