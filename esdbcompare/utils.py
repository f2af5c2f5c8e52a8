"""Utility functions for the ES/DB comparison engine."""

from __future__ import annotations

import re
import json
import copy
from typing import Any, Iterable, Optional

from .models import Identity


def deep_copy(obj: Any) -> Any:
    """Create a deep copy of an object."""
    return copy.deepcopy(obj)


def get_json_size_mb(obj: Any) -> float:
    """Get the approximate size of a JSON object in megabytes."""
    json_str = json.dumps(obj, default=str)
    return len(json_str.encode('utf-8')) / (1024 * 1024)


def is_numeric(value: Any) -> bool:
    """Check if a value is numeric (int or float)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def values_equal(old: Any, new: Any) -> bool:
    """Check if two scalar values are equal (int and float compare by value)."""
    if type(old) == type(new):
        return old == new

    # Handle numeric comparison (int vs float)
    if is_numeric(old) and is_numeric(new):
        return float(old) == float(new)

    return False


def build_path(parent_path: str, key: str | int | Identity) -> str:
    """Build a JSONPath from parent path and key."""
    if isinstance(key, Identity):
        return f"{parent_path}{key.locator()}"
    if isinstance(key, int):
        return f"{parent_path}[{key}]"
    else:
        # Handle special characters in key names
        if re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', str(key)):
            return f"{parent_path}.{key}"
        else:
            return f"{parent_path}['{key}']"


def to_jsonpath(segments: Iterable, root: str = "$") -> str:
    """Render a change-path as a JSONPath string."""
    path = root
    for segment in segments:
        path = build_path(path, segment)
    return path


def to_field_locator(segments: Iterable) -> str:
    """
    Render a path relative to an entity, e.g. ``details.budget`` or ``tags[0]``.

    The empty path renders as an empty string.
    """
    path = to_jsonpath(segments, root="")
    return path[1:] if path.startswith(".") else path


def identity_of(item: Any, identity_key: str = "id") -> Optional[Identity]:
    """Return the identity of a collection element, if it carries one."""
    if isinstance(item, dict) and item.get(identity_key) is not None:
        try:
            hash(item[identity_key])
        except TypeError:
            return None
        return Identity(item[identity_key], identity_key)
    return None


def element_keys(items: list, identity_key: str = "id") -> list:
    """
    Key each element of a list for identity-aware matching.

    Elements carrying an identity are keyed by ``Identity``; elements without
    one, and repeated identities after their first occurrence, are keyed by
    their index.
    """
    keys = []
    seen = set()
    for index, item in enumerate(items):
        identity = identity_of(item, identity_key)
        if identity is not None and identity not in seen:
            seen.add(identity)
            keys.append(identity)
        else:
            keys.append(index)
    return keys


def get_in(data: Any, path: Iterable, default: Any = None) -> Any:
    """
    Resolve a change-path against a tree.

    Returns ``default`` when any segment cannot be resolved.
    """
    current = data
    for segment in path:
        if isinstance(segment, Identity):
            if not isinstance(current, list):
                return default
            for item in current:
                if isinstance(item, dict) and item.get(segment.key) == segment.value:
                    current = item
                    break
            else:
                return default
        elif isinstance(segment, int):
            if not isinstance(current, list) or not 0 <= segment < len(current):
                return default
            current = current[segment]
        else:
            if not isinstance(current, dict) or segment not in current:
                return default
            current = current[segment]
    return current


def find_by_id(collection: Any, id: Any, identity_key: str = "id") -> Optional[dict]:
    """Find the first element of a collection with the given identity."""
    if not isinstance(collection, list):
        return None
    for item in collection:
        if isinstance(item, dict) and item.get(identity_key) == id:
            return item
    return None
