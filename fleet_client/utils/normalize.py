"""Structural translation of legacy payloads into the V1 shape."""

from __future__ import annotations

from typing import Any, Mapping

# Legacy field name -> V1 field name
LEGACY_FIELD_MAP: dict[str, str] = {
    "device_id": "id",
    "last_seen": "lastSeen",
    "ip_address": "ipAddress",
    "mac_address": "macAddress",
}


def normalize_legacy_record(
    record: Mapping[str, Any],
    field_map: Mapping[str, str] = LEGACY_FIELD_MAP,
) -> dict[str, Any]:
    """Rename legacy keys to their V1 names, leaving other keys untouched.

    When a record carries both spellings, the V1 one wins. No defaults are
    invented for missing fields.

    Examples:
        >>> normalize_legacy_record({"device_id": "cam-1", "last_seen": "2026-01-01T00:00:00Z"})
        {'id': 'cam-1', 'lastSeen': '2026-01-01T00:00:00Z'}
    """
    normalized: dict[str, Any] = {}
    for key, value in record.items():
        target = field_map.get(key)
        if target is None:
            normalized[key] = value
        elif target not in record:
            normalized[target] = value
    return normalized


def ensure_list(value: Any) -> list[Any]:
    """Coerce None/scalars to a list (None -> [], x -> [x])."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


def extract_list(value: Any, *keys: str) -> list[Any]:
    """Pull a list out of a bare array or a wrapper object.

    Legacy endpoints return either ``[...]`` or ``{"cameras": [...]}``; this
    returns the first list found under ``keys`` (or the value itself).
    """
    if isinstance(value, list):
        return value
    if isinstance(value, Mapping):
        for key in keys:
            if key in value:
                return ensure_list(value[key])
        return []
    return ensure_list(value)
