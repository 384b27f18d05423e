import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable

from sqlalchemy.orm import Session

from fieldschema.models.audit_event import AuditEvent
from fieldschema.models.field_definition import FieldDefinition

AUDITED_ATTRIBUTES = (
    "field_name",
    "field_label",
    "field_type",
    "is_required",
    "is_hidden",
    "is_read_only",
    "sort_order",
    "options",
    "placeholder",
    "default_value",
    "lookup_type",
    "sub_field_ids",
    "dependent_on_field_id",
    "role",
)


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def snapshot(field: FieldDefinition, attributes: Iterable[str] = AUDITED_ATTRIBUTES) -> dict[str, Any]:
    return {a: _jsonable(getattr(field, a)) for a in attributes}


def diff(before: dict[str, Any], after: dict[str, Any]) -> list[str]:
    return [k for k in after if before.get(k) != after.get(k)]


def log_event(
    *,
    db: Session,
    actor: str | None,
    action: str,
    field: FieldDefinition,
    changed_attributes: list[str] | None = None,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
) -> AuditEvent:
    event = AuditEvent(
        actor=actor,
        action=action,
        entity_type=field.entity_type,
        field_id=field.id,
        changed_attributes=changed_attributes,
        before_values=before,
        after_values=after,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    return event
