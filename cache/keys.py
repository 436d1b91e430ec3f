"""Cache key construction helpers."""

import json
from typing import Any, Dict, Optional, Sequence

KEY_SEPARATOR = ":"


def _canonical_json(value: Any) -> str:
    # sort_keys applies at every nesting level
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def _format_range(range: Optional[Sequence[int]]) -> str:
    if range is None:
        return "all"
    start, end = range
    return f"{int(start)}-{int(end)}"


def create_cache_key(
    method: str,
    resource: str,
    filters: Optional[Dict[str, Any]] = None,
    range: Optional[Sequence[int]] = None,
) -> str:
    """
    Build a deterministic key for a query.

    The key is ``METHOD:resource:window:filters`` where the window is
    ``start-end`` (inclusive row offsets) or ``all`` and the filters are
    canonical JSON, so two filter dicts with the same items in a different
    order produce the same key.

    >>> create_cache_key("get", "transactions", {"b": 2, "a": 1}, range=(0, 49))
    'GET:transactions:0-49:{"a":1,"b":2}'
    """
    if not resource or KEY_SEPARATOR in resource:
        raise ValueError(f"Invalid cache resource name: {resource!r}")

    return KEY_SEPARATOR.join(
        [
            method.upper(),
            resource,
            _format_range(range),
            _canonical_json(filters or {}),
        ]
    )


def partition_of(key: str) -> str:
    """Return the resource component of a key built by ``create_cache_key``."""
    parts = key.split(KEY_SEPARATOR, 2)
    if len(parts) < 2:
        return key
    return parts[1]


def create_global_cache_key(prefix: str, *parts: str) -> str:
    """Key shared by all users, e.g. ``global:crypto:bitcoin,ethereum:usd``."""
    return KEY_SEPARATOR.join(["global", prefix, *parts])
