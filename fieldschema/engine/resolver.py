"""
Composite grouping and dependency gating over a set of field definitions.

Composite: a field listed in another field's ``sub_field_ids`` never renders on
its own; the owning composite renders once, at its own sort position, as a
group anchored by its first declared sub-field.

Dependency: a field with ``dependent_on_field_id = X`` is disabled until X has a
present value. Only non-hidden fields are usable as targets.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from fieldschema.core.errors import CyclicDependency
from fieldschema.engine import registry
from fieldschema.engine.types import CompositeGroup, FieldType, StandaloneField


def as_id(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def index_by_id(fields: Iterable[Any]) -> dict[str, Any]:
    return {str(f.id): f for f in fields}


def ordered(fields: Iterable[Any]) -> list[Any]:
    # stable: equal sort_order keeps incoming order
    return sorted(fields, key=lambda f: f.sort_order or 0)


def is_composite(field: Any) -> bool:
    return registry.field_type_of(field) == FieldType.COMPOSITE


def sub_field_ids_of(field: Any) -> list[str]:
    seen: list[str] = []
    for raw in getattr(field, "sub_field_ids", None) or []:
        sid = as_id(raw)
        if sid and sid not in seen:
            seen.append(sid)
    return seen


def sub_fields_of(fields: Sequence[Any], composite: Any) -> list[Any]:
    """Resolved sub-fields in declared order. Dangling, self and nested-composite ids are skipped."""
    by_id = index_by_id(fields)
    own_id = str(composite.id)
    out = []
    for sid in sub_field_ids_of(composite):
        sub = by_id.get(sid)
        if sub is None or sid == own_id or is_composite(sub):
            continue
        out.append(sub)
    return out


def composite_membership(fields: Sequence[Any]) -> dict[str, str]:
    """sub-field id -> owning composite id (first composite in sort order wins)."""
    out: dict[str, str] = {}
    for f in ordered(fields):
        if not is_composite(f):
            continue
        for sub in sub_fields_of(fields, f):
            out.setdefault(str(sub.id), str(f.id))
    return out


def resolve_layout(fields: Sequence[Any], *, include_hidden: bool = False) -> list[StandaloneField | CompositeGroup]:
    members = composite_membership(fields)
    items: list[StandaloneField | CompositeGroup] = []
    for f in ordered(fields):
        if f.is_hidden and not include_hidden:
            continue
        if str(f.id) in members:
            continue
        if is_composite(f):
            subs = [s for s in sub_fields_of(fields, f) if include_hidden or not s.is_hidden]
            items.append(CompositeGroup(field=f, sub_fields=subs))
        else:
            items.append(StandaloneField(field=f))
    return items


# ---------- dependency ----------

def dependency_target(fields: Sequence[Any], field: Any) -> Any | None:
    dep_id = as_id(getattr(field, "dependent_on_field_id", None))
    if dep_id is None:
        return None
    return index_by_id(fields).get(dep_id)


def is_enabled_by_dependency(fields: Sequence[Any], values: Mapping[str, Any], field: Any) -> bool:
    target = dependency_target(fields, field)
    if target is None:
        return True
    return registry.is_present(target, values.get(target.field_name))


def is_editable(fields: Sequence[Any], values: Mapping[str, Any], field: Any) -> bool:
    if getattr(field, "is_read_only", False):
        return False
    return is_enabled_by_dependency(fields, values, field)


def dependents_of(fields: Iterable[Any], field_id: Any) -> list[Any]:
    fid = as_id(field_id)
    return [f for f in fields if as_id(getattr(f, "dependent_on_field_id", None)) == fid]


def find_cycle(fields: Sequence[Any], field_id: Any, target_id: Any) -> list[str] | None:
    """
    Walk the dependency chain starting at ``target_id`` as if ``field_id`` were
    about to depend on it. Returns the offending path when the walk comes back
    to ``field_id``, otherwise None.
    """
    fid = as_id(field_id)
    edges = {str(f.id): as_id(getattr(f, "dependent_on_field_id", None)) for f in fields}
    edges[fid] = as_id(target_id)

    path = [fid]
    current = as_id(target_id)
    visited: set[str] = set()
    while current is not None:
        path.append(current)
        if current == fid:
            return path
        if current in visited:
            # a pre-existing loop that does not pass through field_id
            return None
        visited.add(current)
        current = edges.get(current)
    return None


def assert_no_cycle(fields: Sequence[Any], field_id: Any, target_id: Any) -> None:
    path = find_cycle(fields, field_id, target_id)
    if path is not None:
        by_id = index_by_id(fields)
        names = [getattr(by_id.get(p), "field_name", p) for p in path]
        raise CyclicDependency(
            "Dependency would create a cycle: " + " -> ".join(names),
            details={"path": path},
        )


def dependency_targets(fields: Sequence[Any], field: Any) -> list[Any]:
    """Fields that ``field`` may depend on: visible, not composite, not itself, no cycle."""
    fid = str(field.id) if getattr(field, "id", None) is not None else None
    out = []
    for f in ordered(fields):
        if f.is_hidden or is_composite(f) or str(f.id) == fid:
            continue
        if fid is not None and find_cycle(fields, fid, f.id) is not None:
            continue
        out.append(f)
    return out


def clear_disabled_values(fields: Sequence[Any], values: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``values`` with dependency-disabled fields blanked, as a form does on re-render."""
    out = dict(values)
    changed = True
    # repeat so that blanking one field also disables the fields chained behind it
    while changed:
        changed = False
        for f in fields:
            name = f.field_name
            if name not in out or not registry.is_present(f, out[name]):
                continue
            if not is_enabled_by_dependency(fields, out, f):
                out[name] = [] if isinstance(out[name], list) else ""
                changed = True
    return out


def find_by_role(fields: Iterable[Any], role: str) -> Any | None:
    wanted = role.strip().lower()
    for f in fields:
        if (getattr(f, "role", None) or "").strip().lower() == wanted:
            return f
    return None
