"""
Field-level diffing of entity snapshots for the audit trail.

A snapshot is a plain ``{column: value}`` dict with JSON-safe values, taken
from an ORM row before and after a mutation.
"""
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Mapping, Optional

from sqlalchemy import inspect

# Bookkeeping columns and secrets never appear in snapshots
SNAPSHOT_EXCLUDED_FIELDS = frozenset({"updated_at", "hashed_password"})

# Stands in for a key that only one of the two snapshots has
_ABSENT = object()


def normalize_value(value: Any) -> Any:
    """Convert a column value into a JSON-safe equivalent.

    Decimals keep their fixed-point text form ("150.00") rather than becoming
    floats, so money fields diff and display exactly as stored.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Mapping):
        return {str(k): normalize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_value(v) for v in value]
    if hasattr(value, "value"):  # enum members
        return normalize_value(value.value)
    return str(value)


def snapshot(instance, exclude: frozenset = SNAPSHOT_EXCLUDED_FIELDS) -> dict[str, Any]:
    """Capture the persisted column values of an ORM instance."""
    mapper = inspect(instance).mapper
    return {
        attr.key: normalize_value(getattr(instance, attr.key))
        for attr in mapper.column_attrs
        if attr.key not in exclude
    }


def values_equal(a: Any, b: Any) -> bool:
    """Deep structural equality with JSON semantics.

    Unlike plain ``==``, ``True`` and ``1`` are different values, and an
    absent key never equals an explicit ``None``.
    """
    if a is _ABSENT or b is _ABSENT:
        return a is b
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if a.keys() != b.keys():
            return False
        return all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, (Mapping, list, tuple)) or isinstance(b, (Mapping, list, tuple)):
        return False
    return a == b


def compute_changes(
    previous: Optional[Mapping[str, Any]],
    new: Optional[Mapping[str, Any]],
) -> list[dict[str, Any]]:
    """Return one ``{field, previous_value, new_value}`` entry per changed key.

    Keys are the union of both snapshots, previous keys first in their own
    order, then keys only present in ``new``. A missing snapshot on either
    side means no diff can be computed and yields ``[]``.
    """
    if previous is None or new is None:
        return []

    keys = list(previous.keys())
    keys.extend(k for k in new.keys() if k not in previous)

    changes = []
    for key in keys:
        before = previous.get(key, _ABSENT)
        after = new.get(key, _ABSENT)
        if values_equal(before, after):
            continue
        changes.append({
            "field": key,
            "previous_value": None if before is _ABSENT else before,
            "new_value": None if after is _ABSENT else after,
        })
    return changes
