import json
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

# Simple, pragmatic patterns
_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9-]{0,63}$")
_SHORT_TEXT_MAX = 255

FEEDBACK_FIELDS = ("end_user_id", "rating", "category", "content", "device_info", "metadata")
DEVICE_FILTER_MAX = 64


def clean_str(val: str | None, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", val).strip()
    if not s:
        return None
    return s[:max_len]


def is_valid_slug(val: str | None) -> bool:
    return bool(val) and bool(_SLUG_RE.match(val))


def json_depth(value: Any, limit: Optional[int] = None) -> int:
    """
    Nesting depth of a decoded JSON value; scalars are depth 0.

    Walks with an explicit stack so hostile nesting cannot exhaust the
    interpreter stack. With ``limit`` set, stops as soon as the depth passes
    it and returns that depth.
    """
    deepest = 0
    stack = [(value, 0)]
    while stack:
        node, depth = stack.pop()
        if isinstance(node, dict):
            children = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue
        depth += 1
        if depth > deepest:
            deepest = depth
            if limit is not None and deepest > limit:
                return deepest
        stack.extend((child, depth) for child in children)
    return deepest


def json_size(value: Any) -> int:
    return len(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def _is_int(value: Any) -> bool:
    # JSON true/false decode to bool, which is an int subclass
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_structured(value: Any, policy) -> Optional[str]:
    if not isinstance(value, dict):
        return "must be a JSON object"
    if json_depth(value, limit=policy.metadata_max_depth) > policy.metadata_max_depth:
        return f"must not nest deeper than {policy.metadata_max_depth} levels"
    if json_size(value) > policy.metadata_max_bytes:
        return f"must not exceed {policy.metadata_max_bytes} bytes when serialized"
    return None


def validate_feedback_payload(payload: Mapping[str, Any], policy) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Validate a decoded ingestion body against the injected policy.

    Returns (clean, errors). ``clean`` holds model attribute names ready for
    ``Feedback(**clean)``; ``errors`` maps each failing field to a message.
    Every field is checked so the caller sees all problems at once.
    """
    clean: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for key in payload:
        if key not in FEEDBACK_FIELDS:
            errors[key] = "unknown field"

    end_user_id = payload.get("end_user_id")
    if end_user_id is not None:
        if not isinstance(end_user_id, str):
            errors["end_user_id"] = "must be a string"
        elif len(end_user_id) > _SHORT_TEXT_MAX:
            errors["end_user_id"] = f"must be at most {_SHORT_TEXT_MAX} characters"
        else:
            clean["end_user_id"] = end_user_id or None

    rating = payload.get("rating")
    if rating is not None:
        if not _is_int(rating):
            errors["rating"] = "must be an integer"
        elif not (policy.rating_min <= rating <= policy.rating_max):
            errors["rating"] = f"must be between {policy.rating_min} and {policy.rating_max}"
        else:
            clean["rating"] = rating

    category = payload.get("category")
    if category is not None:
        if not isinstance(category, str) or category not in policy.categories:
            errors["category"] = "must be one of: " + ", ".join(policy.categories)
        else:
            clean["category"] = category

    content = payload.get("content")
    if content is not None:
        if not isinstance(content, str):
            errors["content"] = "must be a string"
        elif len(content) > policy.content_max_length:
            errors["content"] = f"must be at most {policy.content_max_length} characters"
        else:
            clean["content"] = content

    for field, attr in (("device_info", "device_info"), ("metadata", "meta")):
        value = payload.get(field)
        if value is None:
            clean[attr] = {}
            continue
        problem = _validate_structured(value, policy)
        if problem:
            errors[field] = problem
        else:
            clean[attr] = value

    return clean, errors


def validate_application_fields(data: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
    errors: Dict[str, str] = {}
    raw_name = data.get("name")
    raw_slug = data.get("slug")
    raw_owner = data.get("owner_id")

    name = clean_str(raw_name) if isinstance(raw_name, str) else None
    if not name:
        errors["name"] = "is required"

    slug = raw_slug.strip().lower() if isinstance(raw_slug, str) else None
    if not is_valid_slug(slug):
        errors["slug"] = "must be 1-64 chars of a-z, 0-9 or '-', starting with a letter or digit"

    owner_id = None
    if raw_owner is not None:
        if isinstance(raw_owner, int) and not isinstance(raw_owner, bool):
            raw_owner = str(raw_owner)
        if not isinstance(raw_owner, str) or len(raw_owner) > 64:
            errors["owner_id"] = "must be a string of at most 64 characters"
        else:
            owner_id = raw_owner.strip() or None

    return {"name": name, "slug": slug, "owner_id": owner_id}, errors


def _parse_int(raw: str) -> Optional[int]:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def _parse_datetime(raw: str) -> Optional[datetime]:
    try:
        value = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    # Stored timestamps are UTC; compare naive UTC so SQLite string ordering holds
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_feedback_filters(args: Mapping[str, str], *, statuses, rating_min: int, rating_max: int,
                           page_size: int, page_size_max: int) -> Tuple[Dict[str, Any], Dict[str, str]]:
    """
    Turn admin query-string arguments into typed filters.

    Unknown parameters are ignored; every malformed known parameter is
    reported by name so the caller can fix the request.
    """
    filters: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    def _get(name):
        v = args.get(name)
        if v is None:
            return None
        v = v.strip()
        return v or None

    application_id = _get("application_id")
    if application_id is not None:
        value = _parse_int(application_id)
        if value is None or value < 1:
            errors["application_id"] = "must be a positive integer"
        else:
            filters["application_id"] = value

    status = _get("status")
    if status is not None:
        if status not in statuses:
            errors["status"] = "must be one of: " + ", ".join(statuses)
        else:
            filters["status"] = status

    category = _get("category")
    if category is not None:
        if len(category) > 32:
            errors["category"] = "must be at most 32 characters"
        else:
            filters["category"] = category

    rating = _get("rating")
    if rating is not None:
        value = _parse_int(rating)
        if value is None or not (rating_min <= value <= rating_max):
            errors["rating"] = f"must be an integer between {rating_min} and {rating_max}"
        else:
            filters["rating"] = value

    for key in ("app_version", "os", "os_version"):
        value = _get(key)
        if value is None:
            continue
        if len(value) > DEVICE_FILTER_MAX:
            errors[key] = f"must be at most {DEVICE_FILTER_MAX} characters"
        else:
            filters[key] = value

    for key in ("created_after", "created_before"):
        raw = _get(key)
        if raw is None:
            continue
        value = _parse_datetime(raw)
        if value is None:
            errors[key] = "must be an ISO-8601 timestamp"
        else:
            filters[key] = value

    order = (_get("order") or "desc").lower()
    if order not in ("asc", "desc"):
        errors["order"] = "must be 'asc' or 'desc'"
    else:
        filters["order"] = order

    limit = _get("limit")
    if limit is None:
        filters["limit"] = page_size
    else:
        value = _parse_int(limit)
        if value is None or not (1 <= value <= page_size_max):
            errors["limit"] = f"must be an integer between 1 and {page_size_max}"
        else:
            filters["limit"] = value

    offset = _get("offset")
    if offset is None:
        filters["offset"] = 0
    else:
        value = _parse_int(offset)
        if value is None or value < 0:
            errors["offset"] = "must be a non-negative integer"
        else:
            filters["offset"] = value

    return filters, errors
