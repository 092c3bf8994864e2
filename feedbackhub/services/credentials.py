from __future__ import annotations

import hashlib
import hmac
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from feedbackhub.extensions import db
from feedbackhub.models.application import Application
from .errors import Unauthorized

KEY_SCHEME = "fbk"
# fbk_<8 hex>_<32 random bytes, url-safe base64 without padding>
_KEY_RE = re.compile(r"^fbk_[0-9a-f]{8}_[A-Za-z0-9_-]{43}$")


@dataclass(frozen=True)
class IssuedCredential:
    plaintext: str
    prefix: str
    digest: str

    def __repr__(self) -> str:
        return f"<IssuedCredential prefix={self.prefix!r}>"


def hash_credential(value: str, salt: Optional[str] = None) -> str:
    """Keyed SHA-256 of the full credential; deterministic so lookups are one indexed equality."""
    key = salt if salt is not None else current_app.config["API_KEY_SALT"]
    if not key:
        raise RuntimeError("API_KEY_SALT is not configured")
    return hmac.new(key.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_credential(salt: Optional[str] = None) -> IssuedCredential:
    head = secrets.token_hex(4)
    plaintext = f"{KEY_SCHEME}_{head}_{secrets.token_urlsafe(32)}"
    return IssuedCredential(
        plaintext=plaintext,
        prefix=f"{KEY_SCHEME}_{head}",
        digest=hash_credential(plaintext, salt),
    )


def is_well_formed(value: Optional[str]) -> bool:
    return bool(value) and bool(_KEY_RE.match(value))


def authenticate(credential: Optional[str]) -> Application:
    """
    Resolve a presented API key to exactly one active application.

    Missing, malformed, unknown, rotated-out and deactivated keys all raise the
    same Unauthorized. The lookup compares full-key digests, so a key that is
    "almost" right hashes to an unrelated value and behaves like any other miss.
    """
    credential = (credential or "").strip()
    if not is_well_formed(credential):
        raise Unauthorized()

    digest = hash_credential(credential)
    application = db.session.execute(
        db.select(Application).where(
            Application.api_key_hash == digest,
            Application.is_active.is_(True),
        )
    ).scalar_one_or_none()

    if application is None or not hmac.compare_digest(application.api_key_hash, digest):
        raise Unauthorized()
    return application
