"""
Schema mutation service: the only writer of field definitions.

Every operation works on the full post-change record, never on the changed keys
alone, and checks invariants in a fixed order so identical requests always fail
the same way:

    duplicate name -> invalid reference -> cycle -> read-only conflict

``is_required`` / ``is_hidden`` / ``is_read_only`` conflicts are coerced rather
than rejected (see ``coerce_flags``), except when a request explicitly asks for
a required field that stays read-only.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Iterable, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fieldschema.core.audit import AUDITED_ATTRIBUTES, diff, log_event, snapshot
from fieldschema.core.config import settings
from fieldschema.core.errors import (
    DuplicateFieldName,
    InvalidEntityType,
    InvalidFieldType,
    InvalidReference,
    ReadOnlyConflict,
)
from fieldschema.core.logging import get_logger
from fieldschema.engine import resolver
from fieldschema.engine.types import (
    LOOKUP_TYPES,
    OPTION_TYPES,
    EntityType,
    FieldType,
    LookupType,
    parse_entity_type,
    parse_field_type,
    parse_lookup_type,
)
from fieldschema.engine.validation import validate_form
from fieldschema.engine.values import FieldValues
from fieldschema.models.field_definition import FieldDefinition
from fieldschema.repositories import fields as store
from fieldschema.schemas.fields import FieldDefinitionCreate, FieldDefinitionUpdate

logger = get_logger(__name__)

# attributes a partial update may not null out
NON_NULLABLE = frozenset(
    {"field_name", "field_label", "field_type", "is_required", "is_hidden", "is_read_only", "sort_order"}
)


# ---------- pure helpers ----------

def normalize_id(value: Any) -> str | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        return str(uuid.UUID(str(value).strip()))
    except ValueError:
        return str(value).strip()


def entity_type_or_error(value: Any) -> EntityType:
    etype = parse_entity_type(value)
    if etype is None:
        raise InvalidEntityType(f"Unknown entity type: {value}", details={"entity_type": str(value)})
    return etype


def coerce_flags(record: dict[str, Any], changed: Iterable[str]) -> dict[str, Any]:
    """
    Required and hidden are mutually exclusive: whichever flag the request set
    wins, and when it set both, required wins. Read-only forces required off.
    """
    out = dict(record)
    changed = set(changed)
    if out.get("is_required") and out.get("is_hidden"):
        if "is_hidden" in changed and "is_required" not in changed:
            out["is_required"] = False
        else:
            out["is_hidden"] = False
    if out.get("is_read_only") and out.get("is_required"):
        out["is_required"] = False
    return out


def coerce_type_attributes(record: dict[str, Any], changed: Iterable[str]) -> dict[str, Any]:
    """Drop attributes that do not belong to the field type; validate enum-valued attributes."""
    out = dict(record)
    changed = set(changed)

    ftype = parse_field_type(out.get("field_type"))
    if ftype is None:
        raise InvalidFieldType(
            f"Unknown field type: {out.get('field_type')}",
            details={"field_type": str(out.get("field_type"))},
        )
    out["field_type"] = ftype.value

    if ftype in OPTION_TYPES:
        out["options"] = [str(o) if o is not None else "" for o in (out.get("options") or [])]
    else:
        out["options"] = None

    if ftype in LOOKUP_TYPES:
        raw = out.get("lookup_type") or LookupType.ORGANIZATIONS.value
        lookup = parse_lookup_type(raw)
        if lookup is None:
            raise InvalidFieldType(f"Unknown lookup type: {raw}", details={"lookup_type": str(raw)})
        out["lookup_type"] = lookup.value
    else:
        out["lookup_type"] = None

    if ftype == FieldType.COMPOSITE:
        ids: list[str] = []
        for raw_id in out.get("sub_field_ids") or []:
            sid = normalize_id(raw_id)
            if sid and sid not in ids:
                ids.append(sid)
        out["sub_field_ids"] = ids
        # an explicit dependency on a composite is rejected later; an inherited one is dropped
        if "dependent_on_field_id" not in changed:
            out["dependent_on_field_id"] = None
    else:
        out["sub_field_ids"] = None

    out["dependent_on_field_id"] = normalize_id(out.get("dependent_on_field_id"))
    out["field_label"] = (out.get("field_label") or "").strip()
    role = (out.get("role") or "").strip().lower()
    out["role"] = role or None
    return out


def _record_of(f: FieldDefinition) -> dict[str, Any]:
    rec = {a: getattr(f, a) for a in AUDITED_ATTRIBUTES}
    rec["dependent_on_field_id"] = normalize_id(f.dependent_on_field_id)
    rec["sub_field_ids"] = [normalize_id(s) for s in (f.sub_field_ids or [])] if f.sub_field_ids is not None else None
    return rec


def _apply(f: FieldDefinition, record: Mapping[str, Any]) -> None:
    for attr in AUDITED_ATTRIBUTES:
        value = record.get(attr)
        if attr == "dependent_on_field_id":
            value = uuid.UUID(value) if value else None
        setattr(f, attr, value)


# ---------- invariant checks ----------

def _check_name(db: Session, entity_type: str, field_name: str, *, exclude_id=None) -> None:
    if store.field_name_taken(db, entity_type, field_name, exclude_id=exclude_id):
        raise DuplicateFieldName(
            f"Field name '{field_name}' already exists for {entity_type}",
            details={"entity_type": entity_type, "field_name": field_name},
        )


def _missing_reference(db: Session, ref_id: str, entity_type: str, role: str) -> InvalidReference:
    other = store.find_field_definition(db, ref_id)
    if other is not None:
        return InvalidReference(
            f"{role} {ref_id} belongs to entity type {other.entity_type}, not {entity_type}",
            details={"field_id": ref_id, "entity_type": other.entity_type},
        )
    return InvalidReference(f"{role} {ref_id} does not exist", details={"field_id": ref_id})


def _check_references(
    db: Session,
    fields: list[FieldDefinition],
    record: Mapping[str, Any],
    *,
    field_id: str | None,
    entity_type: str,
) -> None:
    by_id = resolver.index_by_id(fields)
    is_composite = record["field_type"] == FieldType.COMPOSITE.value

    dep_id = record.get("dependent_on_field_id")
    if dep_id:
        if is_composite:
            raise InvalidReference("Composite fields cannot depend on another field", details={"field_id": dep_id})
        # self-dependency is reported as a cycle
        if dep_id != field_id:
            target = by_id.get(dep_id)
            if target is None:
                raise _missing_reference(db, dep_id, entity_type, "Dependency target")
            if target.is_hidden:
                raise InvalidReference(
                    f"Hidden field {target.field_name} cannot be a dependency target",
                    details={"field_id": dep_id},
                )
            if resolver.is_composite(target):
                raise InvalidReference(
                    f"Composite field {target.field_name} cannot be a dependency target",
                    details={"field_id": dep_id},
                )

    for sid in record.get("sub_field_ids") or []:
        if sid == field_id:
            raise InvalidReference("A composite field cannot contain itself", details={"field_id": sid})
        sub = by_id.get(sid)
        if sub is None:
            raise _missing_reference(db, sid, entity_type, "Sub-field")
        if resolver.is_composite(sub):
            raise InvalidReference(
                f"Composite field {sub.field_name} cannot be nested in another composite",
                details={"field_id": sid},
            )

    if field_id is None:
        return

    others = [f for f in fields if str(f.id) != field_id]
    dependents = resolver.dependents_of(others, field_id)
    if dependents and (record.get("is_hidden") or is_composite):
        names = ", ".join(d.field_name for d in dependents)
        reason = "hidden" if record.get("is_hidden") else "composite"
        raise InvalidReference(
            f"Field is a dependency target of {names} and cannot become {reason}",
            details={"dependents": [str(d.id) for d in dependents]},
        )
    if is_composite:
        owners = [f for f in others if resolver.is_composite(f) and field_id in resolver.sub_field_ids_of(f)]
        if owners:
            raise InvalidReference(
                f"Field is a sub-field of {owners[0].field_name} and cannot become a composite",
                details={"composite_id": str(owners[0].id)},
            )


# ---------- reads ----------

def list_fields(db: Session, entity_type: Any) -> list[FieldDefinition]:
    return store.list_field_definitions(db, entity_type_or_error(entity_type).value)


def get_field(db: Session, field_id: Any) -> FieldDefinition:
    return store.get_field_definition(db, field_id)


# ---------- mutations ----------

def _default_sort_order(db: Session, entity_type: str) -> int:
    step = settings.SORT_ORDER_STEP
    current = store.max_sort_order(db, entity_type)
    if current is None:
        return step
    return (current // step + 1) * step


def create_field(
    db: Session,
    entity_type: Any,
    payload: FieldDefinitionCreate,
    *,
    actor: str | None = None,
) -> FieldDefinition:
    etype = entity_type_or_error(entity_type).value
    changed = payload.model_fields_set

    record = coerce_type_attributes(payload.model_dump(), changed)
    record = coerce_flags(record, changed)

    explicit_name = (record.get("field_name") or "").strip() or None
    if explicit_name:
        _check_name(db, etype, explicit_name)

    fields = store.list_field_definitions(db, etype)
    _check_references(db, fields, record, field_id=None, entity_type=etype)

    if record.get("sort_order") is None:
        record["sort_order"] = _default_sort_order(db, etype)

    # flush the caller's pending work outside the savepoint
    db.flush()

    attempts = max(1, settings.FIELD_NAME_RETRY_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        record["field_name"] = explicit_name or (
            f"{settings.FIELD_NAME_PREFIX}{store.next_field_number(db, etype, settings.FIELD_NAME_PREFIX)}"
        )
        now = datetime.utcnow()
        f = FieldDefinition(entity_type=etype, created_at=now, updated_at=now, created_by=actor, updated_by=actor)
        _apply(f, record)
        try:
            # only this attempt is undone on a collision
            with db.begin_nested():
                db.add(f)
                db.flush()
        except IntegrityError:
            if explicit_name or attempt == attempts:
                raise DuplicateFieldName(
                    f"Field name '{record['field_name']}' already exists for {etype}",
                    details={"entity_type": etype, "field_name": record["field_name"]},
                )
            logger.warning(
                "Auto-generated field name collided, retrying",
                entity_type=etype,
                field_name=record["field_name"],
                attempt=attempt,
            )
            continue
        break

    after = snapshot(f)
    log_event(db=db, actor=actor, action="CREATE", field=f, changed_attributes=list(after), after=after)
    db.flush()

    logger.info("Field created", entity_type=etype, field_id=str(f.id), field_name=f.field_name, actor=actor)
    return f


def update_field(
    db: Session,
    field_id: Any,
    payload: FieldDefinitionUpdate,
    *,
    actor: str | None = None,
) -> FieldDefinition:
    f = store.get_field_definition(db, field_id)
    fid = str(f.id)
    changes = {
        k: v for k, v in payload.model_dump(exclude_unset=True).items()
        if not (k in NON_NULLABLE and v is None)
    }

    before = snapshot(f)
    record = {**_record_of(f), **changes}
    record = coerce_type_attributes(record, changes)
    record = coerce_flags(record, changes)

    # asked for required while the result stays read-only
    read_only_conflict = bool(changes.get("is_required")) and bool(record.get("is_read_only"))

    if "field_name" in changes:
        record["field_name"] = record["field_name"].strip()
        if record["field_name"] != f.field_name:
            _check_name(db, f.entity_type, record["field_name"], exclude_id=f.id)

    fields = store.list_field_definitions(db, f.entity_type)
    _check_references(db, fields, record, field_id=fid, entity_type=f.entity_type)

    if record.get("dependent_on_field_id"):
        resolver.assert_no_cycle(fields, fid, record["dependent_on_field_id"])

    if read_only_conflict:
        raise ReadOnlyConflict(
            f"{f.field_label} is read-only and cannot be required",
            details={"field_id": fid},
        )

    _apply(f, record)
    after = snapshot(f)
    changed_attrs = diff(before, after)
    if not changed_attrs:
        return f

    f.updated_at = datetime.utcnow()
    f.updated_by = actor
    db.flush()

    log_event(
        db=db,
        actor=actor,
        action="UPDATE",
        field=f,
        changed_attributes=changed_attrs,
        before={k: before[k] for k in changed_attrs},
        after={k: after[k] for k in changed_attrs},
    )
    db.flush()

    logger.info("Field updated", entity_type=f.entity_type, field_id=fid, changed=changed_attrs, actor=actor)
    return f


def delete_field(db: Session, field_id: Any, *, actor: str | None = None) -> None:
    """Delete a field and clear every reference other fields hold to it. Dependents are kept."""
    f = store.get_field_definition(db, field_id)
    fid = str(f.id)

    for other in store.list_field_definitions(db, f.entity_type):
        if str(other.id) == fid:
            continue
        before = snapshot(other)
        if fid in resolver.sub_field_ids_of(other):
            other.sub_field_ids = [s for s in resolver.sub_field_ids_of(other) if s != fid]
        if normalize_id(other.dependent_on_field_id) == fid:
            other.dependent_on_field_id = None
        after = snapshot(other)
        changed_attrs = diff(before, after)
        if changed_attrs:
            other.updated_at = datetime.utcnow()
            other.updated_by = actor
            log_event(
                db=db,
                actor=actor,
                action="UPDATE",
                field=other,
                changed_attributes=changed_attrs,
                before={k: before[k] for k in changed_attrs},
                after={k: after[k] for k in changed_attrs},
            )
    db.flush()

    before = snapshot(f)
    log_event(db=db, actor=actor, action="DELETE", field=f, changed_attributes=list(before), before=before)
    db.delete(f)
    db.flush()

    logger.info("Field deleted", entity_type=f.entity_type, field_id=fid, field_name=f.field_name, actor=actor)


def reorder_fields(
    db: Session,
    entity_type: Any,
    ordered_ids: list[Any],
    *,
    actor: str | None = None,
) -> list[FieldDefinition]:
    """
    Rewrite sort_order to follow ``ordered_ids``; fields not listed keep their
    relative order after the listed ones. Reapplying the result is a no-op.
    """
    etype = entity_type_or_error(entity_type).value
    fields = store.list_field_definitions(db, etype)
    by_id = resolver.index_by_id(fields)

    wanted: list[str] = []
    for raw in ordered_ids:
        fid = normalize_id(raw)
        if fid is None or fid in wanted:
            continue
        if fid not in by_id:
            raise _missing_reference(db, fid, etype, "Field")
        wanted.append(fid)

    final = [by_id[i] for i in wanted] + [f for f in fields if str(f.id) not in wanted]

    step = settings.SORT_ORDER_STEP
    moved = 0
    for position, f in enumerate(final, start=1):
        new_order = position * step
        if f.sort_order == new_order:
            continue
        old_order = f.sort_order
        f.sort_order = new_order
        f.updated_at = datetime.utcnow()
        f.updated_by = actor
        log_event(
            db=db,
            actor=actor,
            action="UPDATE",
            field=f,
            changed_attributes=["sort_order"],
            before={"sort_order": old_order},
            after={"sort_order": new_order},
        )
        moved += 1
    db.flush()

    if moved:
        logger.info("Fields reordered", entity_type=etype, moved=moved, actor=actor)
    return final


# ---------- record values ----------

def load_values(db: Session, entity_type: Any, entity_id: str) -> FieldValues:
    etype = entity_type_or_error(entity_type).value
    fields = store.list_field_definitions(db, etype)
    return FieldValues.from_stored(fields, store.load_entity_values(db, etype, entity_id))


def save_values(db: Session, entity_type: Any, entity_id: str, values: Mapping[str, Any]):
    """
    Validate a field_name-keyed value map and merge it label-keyed into the
    stored blob. Returns the ValidationResult; nothing is written when it is not valid.
    """
    etype = entity_type_or_error(entity_type).value
    fields = store.list_field_definitions(db, etype)
    known = {f.field_name for f in fields}
    stored = store.load_entity_values(db, etype, entity_id)
    current = FieldValues.from_stored(fields, stored)
    for name, value in values.items():
        if name in known:
            current.set(name, value)

    result = validate_form(fields, current.as_dict())
    if not result.is_valid:
        return result
    store.save_entity_values(db, etype, entity_id, current.to_stored(stored))
    return result
