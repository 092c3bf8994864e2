from __future__ import annotations

from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql import func

from feedbackhub.extensions import db
from feedbackhub.models.application import Application
from feedbackhub.observability import log_event
from feedbackhub.utils.validators import validate_application_fields
from .credentials import issue_credential
from .errors import Conflict, Internal, NotFound, UnprocessableEntity

# Credential collisions are astronomically unlikely; a handful of retries is plenty
MAX_ISSUE_ATTEMPTS = 5


def _slug_taken(slug: str) -> bool:
    q = db.select(Application.id).where(Application.slug == slug)
    return db.session.execute(q).first() is not None


def get_application(app_id: int) -> Application:
    row = db.session.get(Application, app_id)
    if row is None:
        raise NotFound("Application not found")
    return row


def get_application_by_slug(slug: str) -> Application:
    row = db.session.execute(
        db.select(Application).where(Application.slug == (slug or "").strip().lower())
    ).scalar_one_or_none()
    if row is None:
        raise NotFound("Application not found")
    return row


def list_applications(include_inactive: bool = True) -> List[Application]:
    q = db.select(Application).order_by(Application.created_at.desc(), Application.id.desc())
    if not include_inactive:
        q = q.where(Application.is_active.is_(True))
    return list(db.session.execute(q).scalars())


def create_application(name: str, slug: str, owner_id: Optional[str] = None) -> Tuple[Application, str]:
    """
    Register an application and issue its first API key.

    Returns (application, plaintext_key). The plaintext is not stored and
    cannot be recovered later; rotate to get a new one.
    """
    clean, errors = validate_application_fields({"name": name, "slug": slug, "owner_id": owner_id})
    if errors:
        raise UnprocessableEntity(errors)

    if _slug_taken(clean["slug"]):
        raise Conflict("Slug already in use", field="slug")

    for _ in range(MAX_ISSUE_ATTEMPTS):
        issued = issue_credential()
        row = Application(
            name=clean["name"],
            slug=clean["slug"],
            owner_id=clean["owner_id"],
            api_key_prefix=issued.prefix,
            api_key_hash=issued.digest,
            is_active=True,
        )
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            # Lost a race on the slug, or drew a colliding key: only the latter is retried
            if _slug_taken(clean["slug"]):
                raise Conflict("Slug already in use", field="slug")
            continue
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise Internal("Could not create application") from exc

        log_event("application_created", application_id=row.id, slug=row.slug,
                  api_key_prefix=row.api_key_prefix)
        return row, issued.plaintext

    raise Internal("Could not issue a unique API key")


def rotate_api_key(app_id: int) -> Tuple[Application, str]:
    """
    Replace an application's API key in one conditional UPDATE.

    The old key stops authenticating the moment this commits; there is no
    overlap window. Stored feedback is unaffected.
    """
    for _ in range(MAX_ISSUE_ATTEMPTS):
        issued = issue_credential()
        stmt = (
            db.update(Application)
            .where(Application.id == app_id)
            .values(
                api_key_prefix=issued.prefix,
                api_key_hash=issued.digest,
                api_key_rotated_at=func.now(),
                updated_at=func.now(),
            )
        )
        try:
            result = db.session.execute(stmt)
            if result.rowcount == 0:
                db.session.rollback()
                raise NotFound("Application not found")
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            continue
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise Internal("Could not rotate API key") from exc

        row = db.session.get(Application, app_id, populate_existing=True)
        log_event("api_key_rotated", application_id=app_id, api_key_prefix=issued.prefix)
        return row, issued.plaintext

    raise Internal("Could not issue a unique API key")


def set_active(app_id: int, active: bool) -> Application:
    """Deactivated applications fail authentication; their feedback stays put."""
    stmt = (
        db.update(Application)
        .where(Application.id == app_id)
        .values(is_active=active, updated_at=func.now())
    )
    try:
        result = db.session.execute(stmt)
        if result.rowcount == 0:
            db.session.rollback()
            raise NotFound("Application not found")
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise Internal("Could not update application") from exc

    log_event("application_activated" if active else "application_deactivated", application_id=app_id)
    return db.session.get(Application, app_id, populate_existing=True)
