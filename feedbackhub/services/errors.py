from __future__ import annotations

from typing import Optional


class ServiceError(RuntimeError):
    """Recoverable service error, rendered as a JSON response by the app."""

    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"error": self.code, "code": self.status_code, "message": self.message}
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body

    @property
    def headers(self) -> dict:
        return {}


class Unauthorized(ServiceError):
    # No detail beyond the class: never tell a caller why a credential failed
    status_code = 401
    code = "unauthorized"
    default_message = "Missing or invalid credentials"

    def __init__(self):
        super().__init__()


class BadRequest(ServiceError):
    status_code = 400
    code = "bad_request"
    default_message = "Malformed request"


class UnprocessableEntity(ServiceError):
    status_code = 422
    code = "validation_failed"
    default_message = "One or more fields are invalid"

    def __init__(self, fields: dict, message: Optional[str] = None):
        super().__init__(message, fields=dict(fields))
        self.fields = dict(fields)


class TooManyRequests(ServiceError):
    status_code = 429
    code = "rate_limited"
    default_message = "Too many requests"

    def __init__(self, retry_after: int):
        super().__init__(None, retry_after=int(retry_after))
        self.retry_after = int(retry_after)

    @property
    def headers(self) -> dict:
        return {"Retry-After": str(self.retry_after)}


class Conflict(ServiceError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class InvalidTransition(Conflict):
    code = "invalid_transition"
    default_message = "Status transition not allowed"


class NotFound(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Internal(ServiceError):
    pass
