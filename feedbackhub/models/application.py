from sqlalchemy import func, true
from feedbackhub.extensions import db


class Application(db.Model):
    """A registered mobile app allowed to submit feedback."""

    __tablename__ = "applications"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(64), nullable=False, unique=True)

    # Only the displayable head of the key and its keyed hash are stored
    api_key_prefix = db.Column(db.String(16), nullable=False, unique=True)
    api_key_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    api_key_rotated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, server_default=true())

    # Keep the owner reference optional to avoid coupling; we store ids only
    owner_id = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    feedback = db.relationship("Feedback", back_populates="application", lazy="dynamic")

    def __repr__(self) -> str:
        return f"<Application id={self.id} slug={self.slug!r} active={self.is_active}>"

    def to_dict(self) -> dict:
        return dict(
            id=self.id,
            name=self.name,
            slug=self.slug,
            api_key_prefix=self.api_key_prefix,
            api_key_rotated_at=self.api_key_rotated_at.isoformat() if self.api_key_rotated_at else None,
            is_active=bool(self.is_active),
            owner_id=self.owner_id,
            created_at=self.created_at.isoformat() if self.created_at else None,
            updated_at=self.updated_at.isoformat() if self.updated_at else None,
        )
