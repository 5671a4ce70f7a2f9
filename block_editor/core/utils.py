from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no UI or disk I/O; they can be
used across all layers of the editor.
"""

from typing import Any, Dict, List, Mapping, MutableMapping
import logging
import uuid

__all__ = [
    "generate_block_id",
    "split_field_path",
    "get_by_path",
    "set_by_path",
    "clamp",
    "deep_merge",
]

logger = logging.getLogger(__name__)

BLOCK_ID_PREFIX = "ve-"


def generate_block_id() -> str:
    """Generate a globally unique id for a new block."""
    return f"{BLOCK_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def split_field_path(path: str) -> List[str]:
    """Split a dot-notation path (``"styles.desktop.color"``) into its keys.

    Empty segments are rejected so that ``"a..b"`` or a trailing dot never
    creates keys named ``""``.

    Raises
    ------
    ValueError
        If *path* is empty or contains an empty segment.
    """
    if not isinstance(path, str) or not path.strip():
        raise ValueError("Field path cannot be empty")
    parts = path.split(".")
    if any(not p for p in parts):
        raise ValueError(f"Field path '{path}' contains an empty segment")
    return parts


def get_by_path(data: Mapping[str, Any], keys: List[str], default: Any = None) -> Any:
    """Read a nested value, returning *default* when any key is missing."""
    current: Any = data
    for key in keys:
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    return current


def set_by_path(data: MutableMapping[str, Any], keys: List[str], value: Any) -> None:
    """Write *value* at the nested location *keys*, creating dicts as needed.

    A non-dict value sitting on an intermediate key is replaced by a dict;
    the caller asked for a deeper write, so the scalar cannot be preserved.
    """
    current: MutableMapping[str, Any] = data
    for key in keys[:-1]:
        nxt = current.get(key)
        if not isinstance(nxt, dict):
            if nxt is not None:
                logger.debug("Overwriting non-dict value at '%s' for nested write", key)
            nxt = {}
            current[key] = nxt
        current = nxt
    current[keys[-1]] = value


def clamp(value: int, lower: int, upper: int) -> int:
    """Clamp *value* into the inclusive range ``[lower, upper]``."""
    return max(lower, min(upper, value))


def deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a new dict with *override* merged recursively into *base*."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged
