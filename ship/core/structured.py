"""Helpers for safely working with dynamic (untyped) structures.

Release options arrive as TOML tables, JSON manifests and `--set` overrides.
These helpers validate such data at the boundary and narrow its type.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def as_obj_list(obj: object) -> ObjList | None:
    if isinstance(obj, list):
        return cast(ObjList, obj)
    return None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value from a mapping, stripping whitespace.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_bool(table: Mapping[str, object], key: str, default: bool) -> bool:
    """Get a boolean value, falling back to default for anything else."""
    value = table.get(key)
    if isinstance(value, bool):
        return value
    return default


def get_int(table: Mapping[str, object], key: str) -> int | None:
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys) from a mapping."""
    return as_str_dict(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> tuple[str, ...] | None:
    """Get a list of strings; a single string is accepted as a one-item list.

    Returns None when the key is missing, null or false.
    """
    value = table.get(key)
    if isinstance(value, str):
        s = value.strip()
        return (s,) if s else ()
    items = as_obj_list(value)
    if items is None:
        return None
    return tuple(item.strip() for item in items if isinstance(item, str) and item.strip())


def deep_merge(*layers: Mapping[str, object]) -> StrDict:
    """Merge mappings recursively; earlier layers take precedence.

    Nested tables are merged key by key. Any other value (including lists)
    from an earlier layer replaces the later one wholesale. `None` values do
    not override, so a layer can leave a key unset explicitly.
    """
    out: StrDict = {}
    for layer in reversed(layers):
        for key, value in layer.items():
            if value is None:
                continue
            current = out.get(key)
            nested = as_str_dict(value)
            if nested is not None and is_str_dict(current):
                out[key] = deep_merge(nested, current)
            elif nested is not None:
                out[key] = deep_merge(nested)
            else:
                out[key] = value
    return out


def get_path(table: Mapping[str, object], path: str) -> object | None:
    """Look up a dotted path (`git.tagName`) in nested mappings."""
    current: object = table
    for part in path.split("."):
        d = as_str_dict(current)
        if d is None or part not in d:
            return None
        current = d[part]
    return current


def set_path(table: StrDict, path: str, value: object) -> None:
    """Assign a value at a dotted path, creating intermediate tables."""
    parts = path.split(".")
    current = table
    for part in parts[:-1]:
        nested = as_str_dict(current.get(part))
        if nested is None:
            nested = {}
            current[part] = nested
        current = nested
    current[parts[-1]] = value
