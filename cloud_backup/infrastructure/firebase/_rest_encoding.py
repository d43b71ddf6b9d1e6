"""Python values <-> Firestore REST typed values ({"stringValue": ...} and friends)."""

import base64
import re
from datetime import UTC, datetime
from typing import Any

# Firestore sends up to nanoseconds; datetime holds microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _encode_value(v: Any) -> dict:
    # bool before int: bool is an int subclass
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, datetime):
        if v.tzinfo is None:
            v = v.replace(tzinfo=UTC)
        return {"timestampValue": v.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)}
    if isinstance(v, bytes):
        return {"bytesValue": base64.b64encode(v).decode("ascii")}
    if isinstance(v, (list, tuple)):
        return {"arrayValue": {"values": [_encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": encode_document(v)}
    raise TypeError(f"Cannot store {type(v).__name__} in Firestore")


def encode_document(data: dict[str, Any]) -> dict:
    """Build the {"fields": {...}} body of a Firestore Document."""
    return {"fields": {key: _encode_value(value) for key, value in data.items()}}


def _parse_timestamp(raw: str) -> datetime:
    text = _FRACTION_RE.sub(r"\1", raw.replace("Z", "+00:00"))
    return datetime.fromisoformat(text).astimezone(UTC)


_DECODERS = {
    "nullValue": lambda _: None,
    "booleanValue": lambda raw: raw,
    "integerValue": int,
    "doubleValue": float,
    "stringValue": lambda raw: raw,
    "timestampValue": _parse_timestamp,
    "bytesValue": base64.b64decode,
    "arrayValue": lambda raw: [_decode_value(x) for x in raw.get("values") or []],
    "mapValue": lambda raw: decode_document(raw.get("fields")),
}


def _decode_value(obj: dict) -> Any:
    for kind, decode in _DECODERS.items():
        if kind in obj:
            return decode(obj[kind])
    return None


def decode_document(fields: dict | None) -> dict:
    """Turn Document.fields back into a plain dict; missing fields give {}."""
    return {key: _decode_value(value) for key, value in (fields or {}).items()}
