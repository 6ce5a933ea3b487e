"""Helpers for reading untyped JSON/TOML data.

The manifest, the workspace store and ``zt.toml`` are all parsed into plain
dicts first; these helpers give structural access with runtime checks so a
malformed file produces a clean error instead of a KeyError deep in setup.
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
    """Get a string value, stripped.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    return as_obj_list(table.get(key))


def as_str_map(obj: object) -> dict[str, str] | None:
    """Return obj as ``dict[str, str]`` if every key and value is a string.

    Used for environment mappings read back from the workspace store.
    """
    data = as_str_dict(obj)
    if data is None:
        return None
    out: dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(value, str):
            return None
        out[key] = value
    return out
