from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from feedbackhub.extensions import db
from feedbackhub.models.feedback import Feedback, FeedbackStatus
from feedbackhub.observability import log_event
from feedbackhub.utils.validators import validate_feedback_payload
from .credentials import authenticate
from .errors import BadRequest, Internal, TooManyRequests, UnprocessableEntity
from .rate_limit import SubmissionRateLimiter

DEFAULT_CATEGORIES: Tuple[str, ...] = ("bug", "feature", "general", "ui-ux")


@dataclass(frozen=True)
class IngestionPolicy:
    """Tunable ingestion rules, read from config once and handed to the service."""

    rate_limit: str = "60 per minute"
    rate_limit_strategy: str = "moving-window"
    categories: Tuple[str, ...] = field(default=DEFAULT_CATEGORIES)
    rating_min: int = 1
    rating_max: int = 5
    content_max_length: int = 5000
    metadata_max_bytes: int = 8192
    metadata_max_depth: int = 8

    @classmethod
    def from_config(cls, config) -> "IngestionPolicy":
        return cls(
            rate_limit=config.get("INGEST_RATE_LIMIT", cls.rate_limit),
            rate_limit_strategy=config.get("INGEST_RATE_LIMIT_STRATEGY", cls.rate_limit_strategy),
            categories=tuple(config.get("FEEDBACK_CATEGORIES") or DEFAULT_CATEGORIES),
            rating_min=int(config.get("RATING_MIN", cls.rating_min)),
            rating_max=int(config.get("RATING_MAX", cls.rating_max)),
            content_max_length=int(config.get("FEEDBACK_CONTENT_MAX_LENGTH", cls.content_max_length)),
            metadata_max_bytes=int(config.get("FEEDBACK_METADATA_MAX_BYTES", cls.metadata_max_bytes)),
            metadata_max_depth=int(config.get("FEEDBACK_METADATA_MAX_DEPTH", cls.metadata_max_depth)),
        )


def _reject_constant(name: str):
    # NaN and Infinity are Python extensions, not JSON
    raise ValueError(f"{name} is not valid JSON")


def parse_body(raw: Optional[bytes]) -> dict:
    if not raw:
        raise BadRequest("Request body must be a JSON object")
    try:
        payload = json.loads(raw, parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError, RecursionError):
        raise BadRequest("Request body is not valid JSON")
    if not isinstance(payload, dict):
        raise BadRequest("Request body must be a JSON object")
    return payload


class IngestionService:
    """
    Accepts one feedback submission per call.

    Order is fixed: credential, rate limit, body shape, field rules, insert.
    Each step raises before anything is written.
    """

    def __init__(self, policy: IngestionPolicy, rate_limiter: SubmissionRateLimiter):
        self.policy = policy
        self.rate_limiter = rate_limiter

    def submit(self, credential: Optional[str], raw_body: Optional[bytes]) -> Feedback:
        application = authenticate(credential)
        app_id = application.id

        decision = self.rate_limiter.hit(app_id)
        if not decision.allowed:
            log_event("rate_limited", logging.WARNING, application_id=app_id,
                      retry_after=decision.retry_after)
            raise TooManyRequests(retry_after=decision.retry_after)

        payload = parse_body(raw_body)
        clean, errors = validate_feedback_payload(payload, self.policy)
        if errors:
            log_event("feedback_rejected", application_id=app_id, fields=sorted(errors))
            raise UnprocessableEntity(errors)

        fb = Feedback(application_id=app_id, status=FeedbackStatus.PENDING.value, **clean)
        db.session.add(fb)
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise Internal("Could not store feedback") from exc

        # Structured log for observability (no content to avoid PII)
        log_event(
            "feedback_submitted",
            application_id=app_id,
            feedback_id=fb.id,
            category=fb.category,
            rating=fb.rating,
            remaining=decision.remaining,
        )
        return fb
