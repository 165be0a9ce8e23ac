"""Helpers for safely reading the untyped structures produced by tomllib."""

from __future__ import annotations

from typing import TypeGuard, cast

StrDict = dict[str, object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    """Return obj as StrDict if it matches, else None."""
    if is_str_dict(obj):
        return obj
    return None


def get_str(d: StrDict, key: str) -> str | None:
    value = d.get(key)
    return value if isinstance(value, str) else None


def get_str_list(d: StrDict, key: str) -> list[str] | None:
    """Return d[key] if it is a list of strings, else None."""
    value = d.get(key)
    if not isinstance(value, list):
        return None
    items = cast(list[object], value)
    if not all(isinstance(item, str) for item in items):
        return None
    return cast(list[str], items)


def get_table(d: StrDict, key: str) -> StrDict | None:
    return as_str_dict(d.get(key))
