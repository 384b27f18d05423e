"""
Advanced-search matching shared by every list page.

``matches_criterion(value, field_type, criterion)`` decides whether one stored
value satisfies one criterion row. It only looks at the semantic kind of the
field type, never at which entity owns the column.
"""

from __future__ import annotations

import re
import unicodedata
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping

from fieldschema.engine import registry
from fieldschema.engine.types import FieldType, FilterCriterion, ValueKind

EMPTY_MARKERS = frozenset({"", "n/a"})

NEGATIVE_OPERATORS = frozenset(
    {"not_equals", "not_contains", "exclude", "none_of", "area_code_is_not", "is_not_checked"}
)

_NUM_SPLIT = re.compile(r"(\d+)")


# ---------- ordering helpers ----------

def _fold(value: Any) -> str:
    s = unicodedata.normalize("NFKD", str(value))
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s.casefold().strip()


def natural_key(value: Any) -> tuple:
    """Case-insensitive, accent-insensitive, numeric-aware sort key: Field_9 < Field_10."""
    parts = _NUM_SPLIT.split(_fold("" if value is None else value))
    return tuple(int(p) if i % 2 else p for i, p in enumerate(parts))


def compare_values(a: Any, b: Any) -> int:
    """-1/0/1. Numeric when both sides parse as numbers, natural string order otherwise."""
    na, nb = registry.parse_number(a), registry.parse_number(b)
    if na is not None and nb is not None:
        return (na > nb) - (na < nb)
    ka, kb = natural_key(a), natural_key(b)
    return (ka > kb) - (ka < kb)


# ---------- predicates ----------

def is_empty_value(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, set)):
        return all(is_empty_value(v) for v in value)
    return str(value).strip().lower() in EMPTY_MARKERS


def _as_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _parse_dt(value: Any) -> datetime | None:
    if value is None:
        return None
    dt = registry.parse_datetime(value)
    return _as_utc_naive(dt) if dt is not None else None


def _match_boolean(raw: Any, c: FilterCriterion) -> bool:
    truthy = registry.parse_bool(raw) is True
    if c.operator == "is_checked":
        return truthy
    if c.operator == "is_not_checked":
        return not truthy
    if c.operator in ("equals", "not_equals"):
        wanted = registry.parse_bool(c.value)
        if wanted is None:
            # blank / "any" operand of a tri-state filter
            return True
        stored = registry.parse_bool(raw)
        if stored is None:
            return c.operator == "not_equals"
        return (stored == wanted) if c.operator == "equals" else (stored != wanted)
    return False


def _match_date(raw: Any, kind: ValueKind, c: FilterCriterion, now: datetime | None) -> bool:
    stored = _parse_dt(raw)
    if stored is None:
        return False
    op = c.operator

    if op in ("equals", "on") and c.value:
        target = _parse_dt(c.value)
        return target is not None and stored.date() == target.date()
    if op == "before" and c.value:
        target = _parse_dt(c.value)
        return target is not None and stored < target
    if op == "after" and c.value:
        target = _parse_dt(c.value)
        return target is not None and stored > target
    if op in ("between", "is_between") and c.value_from and c.value_to:
        lo, hi = _parse_dt(c.value_from), _parse_dt(c.value_to)
        if lo is None or hi is None:
            return False
        if kind == ValueKind.DATE:
            return lo.date() <= stored.date() <= hi.date()
        return lo <= stored <= hi
    if op == "within" and c.value:
        days = registry.parse_number(c.value)
        if days is None or days < 0:
            return False
        current = _as_utc_naive(now) if now is not None else datetime.now()
        return current - timedelta(days=days) <= stored <= current
    return False


def _match_number(raw: Any, c: FilterCriterion) -> bool:
    op = c.operator
    if op == "between":
        if not _has(c.value_from) or not _has(c.value_to):
            return False
        return compare_values(raw, c.value_from) >= 0 and compare_values(raw, c.value_to) <= 0
    if not _has(c.value):
        return False
    cmp = compare_values(raw, c.value)
    checks: dict[str, Callable[[int], bool]] = {
        "equals": lambda x: x == 0,
        "not_equals": lambda x: x != 0,
        "gt": lambda x: x > 0,
        "gte": lambda x: x >= 0,
        "lt": lambda x: x < 0,
        "lte": lambda x: x <= 0,
    }
    check = checks.get(op)
    return check(cmp) if check else False


def _has(v: str | None) -> bool:
    return v is not None and str(v).strip() != ""


def _split_list(v: str | None) -> list[str]:
    return [x.strip().lower() for x in str(v or "").split(",") if x.strip()]


def _match_string(raw: Any, c: FilterCriterion) -> bool:
    s = str(raw).strip().lower()
    op = c.operator
    if s in EMPTY_MARKERS:
        return op == "exclude"

    v = str(c.value or "").strip().lower()
    words = [w for w in re.split(r"[\s,]+", v) if w]

    simple: dict[str, Callable[[], bool]] = {
        "equals": lambda: s == v,
        "not_equals": lambda: s != v,
        "starts_with": lambda: s.startswith(v),
        "ends_with": lambda: s.endswith(v),
        "contains": lambda: v in s,
        "not_contains": lambda: v not in s,
    }
    if op in simple:
        return simple[op]() if v else True

    if op == "domain_equals":
        if not v or "@" not in s:
            return False
        return s.rsplit("@", 1)[1] == v

    if op in ("area_code_is", "area_code_is_not"):
        if not v:
            return False
        area = re.sub(r"\D", "", s)[:3]
        if not area:
            return False
        return area == v if op == "area_code_is" else area != v

    if op in ("any_of", "none_of"):
        choices = _split_list(c.value)
        if not choices:
            return True
        return (s in choices) if op == "any_of" else (s not in choices)

    if op in ("include_any", "include_all", "exclude"):
        if not words:
            return True
        if op == "include_any":
            return any(w in s for w in words)
        if op == "include_all":
            return all(w in s for w in words)
        return not any(w in s for w in words)

    return False


def _match_scalar(raw: Any, kind: ValueKind, c: FilterCriterion, now: datetime | None) -> bool:
    if kind == ValueKind.BOOLEAN or c.operator in ("is_checked", "is_not_checked"):
        return _match_boolean(raw, c)
    if kind in (ValueKind.DATE, ValueKind.DATETIME):
        return _match_date(raw, kind, c, now)
    if kind == ValueKind.NUMBER:
        if is_empty_value(raw):
            return False
        return _match_number(raw, c)
    return _match_string(raw, c)


def matches_criterion(
    value: Any,
    field_type: str | FieldType | None,
    criterion: FilterCriterion,
    *,
    now: datetime | None = None,
) -> bool:
    """True when ``value`` satisfies ``criterion`` for a column of ``field_type``."""
    op = criterion.operator
    empty = is_empty_value(value)

    if op in ("is_empty", "not_exists"):
        return empty
    if op in ("is_not_empty", "exists"):
        return not empty

    kind = registry.classify(field_type)

    if isinstance(value, (list, tuple, set)):
        items = [v for v in value if not is_empty_value(v)]
        if not items:
            return _match_scalar("", kind, criterion, now)
        results = [_match_scalar(v, kind, criterion, now) for v in items]
        return all(results) if op in NEGATIVE_OPERATORS else any(results)

    return _match_scalar(value, kind, criterion, now)


def matches_all(
    row: Mapping[str, Any],
    field_types: Mapping[str, Any],
    criteria: Iterable[tuple[str, FilterCriterion]],
    *,
    now: datetime | None = None,
) -> bool:
    """A list row passes when every (field_name, criterion) pair matches."""
    return all(
        matches_criterion(row.get(name), field_types.get(name), c, now=now)
        for name, c in criteria
    )
