"""Shallow field-level diff between two entity snapshots."""

from collections.abc import Mapping
from typing import Any, Dict

from app.audit.audit_models import ABSENT, FieldChange


def _differs(old: Any, new: Any) -> bool:
    """Strict inequality: no coercion between types, bool is not a number."""
    if old is new:
        return False
    if old is ABSENT or new is ABSENT:
        return True
    if isinstance(old, bool) or isinstance(new, bool):
        return type(old) is not type(new) or old != new
    numeric = (int, float)
    if isinstance(old, numeric) and isinstance(new, numeric):
        return old != new
    if type(old) is not type(new):
        return True
    try:
        return bool(old != new)
    except (TypeError, ValueError):
        # no usable equality (e.g. array-like values)
        return True


def calculate_changes(old_values: Mapping[str, Any], new_values: Mapping[str, Any]) -> Dict[str, FieldChange]:
    """
    Changes for every key of new_values that differs from old_values, plus every key
    dropped from new_values (new = ABSENT). Equal or missing-in-both keys are omitted.
    """
    old_values = old_values or {}
    new_values = new_values or {}
    changes: Dict[str, FieldChange] = {}

    for key, new in new_values.items():
        old = old_values[key] if key in old_values else ABSENT
        if _differs(old, new):
            changes[key] = FieldChange(old=old, new=new)

    for key, old in old_values.items():
        if key not in new_values:
            changes[key] = FieldChange(old=old, new=ABSENT)

    return changes


def serialize_changes(changes: Mapping[str, FieldChange]) -> Dict[str, Dict[str, Any]]:
    """
    JSON-ready form for storage. An ABSENT side is left out: a removed key is stored
    as {"old": ...} and an added key as {"new": ...}, so a null value stays distinguishable.
    """
    serialized: Dict[str, Dict[str, Any]] = {}
    for key, change in changes.items():
        entry: Dict[str, Any] = {}
        if change.old is not ABSENT:
            entry["old"] = change.old
        if change.new is not ABSENT:
            entry["new"] = change.new
        serialized[key] = entry
    return serialized
