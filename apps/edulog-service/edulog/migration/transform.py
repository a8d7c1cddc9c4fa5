"""
Record transformation and validation for extracted rows.

`transform_record` applies the generic rules (field mappings, exclusions,
defaults, timestamp and JSON normalisation) followed by any table-specific
transformer. `validate_record` reports problems without mutating the row.
"""
from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from . import config as cfg

logger = logging.getLogger(__name__)

_FORMATS = {name: re.compile(pattern) for name, pattern in cfg.FORMAT_PATTERNS.items()}

# Only columns known to hold UUIDs; provider ids and external keys are free-form.
_UUID_COLUMNS = {"id", "user_id", "identity_id"} | {check[1] for check in cfg.INTEGRITY_CHECKS}


def to_iso_utc(value: Any) -> Any:
    """Normalise a timestamp-like value to ISO-8601 UTC; leave others untouched."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    else:
        return value
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _maybe_json(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if not (stripped.startswith("{") or stripped.startswith("[")):
        return value
    try:
        return json.loads(stripped)
    except ValueError:
        return value


def _transform_user_profiles(record: Dict[str, Any]) -> Dict[str, Any]:
    if "id" in record and "user_id" not in record:
        record["user_id"] = record.pop("id")
    if record.get("interests") is None:
        record["interests"] = []
    if record.get("lecturer_info") is None:
        record["lecturer_info"] = {}
    record["role"] = record.get("role") or "member"
    record["is_active"] = record.get("is_active") is not False
    if not record.get("updated_at"):
        record["updated_at"] = record.get("created_at")
    return record


def _transform_posts(record: Dict[str, Any]) -> Dict[str, Any]:
    record["category"] = record.get("category") or "general"
    for key in ("tags", "images"):
        if record.get(key) is None:
            record[key] = []
    record["view_count"] = record.get("view_count") or 0
    record["is_pinned"] = bool(record.get("is_pinned"))
    record["is_published"] = record.get("is_published") is not False
    return record


def _transform_auth_methods(record: Dict[str, Any]) -> Dict[str, Any]:
    # Supabase auth is replaced by Cognito on RDS
    if record.get("provider") == "supabase":
        record["provider"] = "cognito"
    return record


def _transform_notifications(record: Dict[str, Any]) -> Dict[str, Any]:
    record["category"] = record.get("category") or "system"
    record["priority"] = record.get("priority") or "normal"
    if not record.get("channels"):
        record["channels"] = ["in_app"]
    if not record.get("send_at"):
        record["send_at"] = record.get("created_at")
    return record


TABLE_TRANSFORMERS: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    "user_profiles": _transform_user_profiles,
    "posts": _transform_posts,
    "auth_methods": _transform_auth_methods,
    "notifications": _transform_notifications,
}


def transform_record(table: str, record: Dict[str, Any]) -> Dict[str, Any]:
    mappings = cfg.FIELD_MAPPINGS.get(table, {})
    defaults = cfg.DEFAULT_VALUES.get(table, {})
    excluded = set(cfg.EXCLUDE_FIELDS)

    out: Dict[str, Any] = {}
    for key, value in record.items():
        if key in excluded:
            continue
        target = mappings.get(key, key)
        if target.endswith("_at") or target.endswith("_date"):
            value = to_iso_utc(value)
        else:
            value = _maybe_json(value)
        out[target] = value

    for key, value in defaults.items():
        if out.get(key) is None:
            out[key] = value

    transformer = TABLE_TRANSFORMERS.get(table)
    if transformer is not None:
        out = transformer(out)
    return out


def _format_for_column(column: str) -> str | None:
    if column == "email" or column.endswith("_email"):
        return "email"
    if column in _UUID_COLUMNS:
        return "uuid"
    if column.endswith("_url"):
        return "url"
    return None


def validate_record(table: str, record: Dict[str, Any]) -> List[str]:
    """Return a list of human-readable problems (empty when the row is valid)."""
    problems: List[str] = []
    for column in cfg.REQUIRED_FIELDS.get(table, []):
        value = record.get(column)
        if value is None or (isinstance(value, str) and not value.strip()):
            problems.append(f"missing required field {column}")
    for column, value in record.items():
        # Empty optional values are left alone; required ones were checked above
        if not isinstance(value, str) or not value.strip():
            continue
        fmt = _format_for_column(column)
        if fmt and not _FORMATS[fmt].match(value):
            problems.append(f"invalid {fmt} in {column}")
    return problems
