"""
Before/after images of ORM rows and the field-level diffs stored in unit_history.

In memory a snapshot is a plain ``{column_name: python_value}`` dict. Values
are only turned into JSON primitives by ``to_json`` when a history entry is
written.
"""
import enum
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import inspect

Snapshot = Dict[str, Any]

# Bookkeeping columns that never belong in an audit diff
IGNORED_COLUMNS = frozenset({"created_at", "updated_at"})


def snapshot(obj, fields: Optional[Iterable[str]] = None) -> Snapshot:
    """Column values of a mapped instance, keyed by column name."""
    mapper = inspect(obj).mapper
    wanted = set(fields) if fields is not None else None
    image: Snapshot = {}
    for attr in mapper.column_attrs:
        name = attr.columns[0].name
        if name in IGNORED_COLUMNS:
            continue
        if wanted is not None and name not in wanted:
            continue
        image[name] = getattr(obj, attr.key)
    return image


def _normalize(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, float):
        value = Decimal(str(value))
    if isinstance(value, Decimal):
        # 150 and 150.00 are the same amount
        return value.normalize()
    return value


def diff_values(
    before: Optional[Snapshot], after: Optional[Snapshot]
) -> Tuple[Snapshot, Snapshot]:
    """
    Reduce two images to the keys whose values differ.

    A key missing on one side counts as None there, so diffing against an
    empty ``before`` keeps every non-null field of ``after``.
    """
    before = before or {}
    after = after or {}
    old: Snapshot = {}
    new: Snapshot = {}
    for key in list(before) + [k for k in after if k not in before]:
        b = before.get(key)
        a = after.get(key)
        if _normalize(b) == _normalize(a):
            continue
        old[key] = b
        new[key] = a
    # Drop the explicit Nones on the side where the field did not exist
    old = {k: v for k, v in old.items() if k in before}
    new = {k: v for k, v in new.items() if k in after}
    return old, new


def to_json(value: Any) -> Any:
    """Coerce a snapshot (or any nested value) to JSON-serializable primitives."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(v) for v in value]
    raise TypeError(f"cannot store value of type {type(value).__name__} in history")
