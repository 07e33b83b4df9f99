"""Common utility functions."""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic.alias_generators import to_camel

# Payloads copied from remote platforms keep their own key names
RAW_FIELDS = {"remote_video"}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse a path/body id, returning None for anything malformed."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except InvalidId:
        return None


def _serialize_value(value: Any, rename: bool = True) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {
            (to_camel(k) if rename else k): _serialize_value(v, rename and k not in RAW_FIELDS)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_serialize_value(v, rename) for v in value]
    return value


def serialize_doc(doc: Dict) -> Dict:
    """Convert MongoDB document for JSON serialization, with camelCase keys."""
    if doc is None:
        return None
    result = {}
    for key, value in doc.items():
        if key == "_id":
            result["id"] = str(value)
        else:
            result[to_camel(key)] = _serialize_value(value, key not in RAW_FIELDS)
    return result


def to_millis(value: Any) -> int:
    """Epoch milliseconds for a stored timestamp; 0 when missing or unparseable."""
    if not value:
        return 0
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return 0
        return to_millis(parsed)
    return 0


def make_channel_handle(name: str, max_length: int = 20) -> str:
    """Lowercase hyphenated handle for a channel name, with a timestamp fallback."""
    handle = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
    handle = handle[:max_length]
    return handle or f"channel-{int(utc_now().timestamp() * 1000)}"
