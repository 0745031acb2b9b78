"""URL helpers."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import urlencode


def build_url(path: str, params: Mapping[str, Any] | None = None) -> str:
    """Append a query string to a path, skipping ``None`` values.

    Args:
        path: Request path, e.g. ``/cameras``.
        params: Query parameters. Booleans render as ``true``/``false``.

    Returns:
        The path with an encoded query string, or the path unchanged when no
        parameter has a value.

    Examples:
        >>> build_url("/cameras", {"limit": 10, "cursor": None})
        '/cameras?limit=10'
    """
    if not params:
        return path

    pairs = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        pairs.append((key, value))

    if not pairs:
        return path

    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{urlencode(pairs)}"
