"""
Data access for field definitions and stored custom values.

Repository rules:
- Pure data-access logic only
- Every function receives the Session explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fieldschema.core.errors import NotFound
from fieldschema.models.entity_values import EntityValues
from fieldschema.models.field_definition import FieldDefinition


def as_uuid(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def list_field_definitions(db: Session, entity_type: str) -> list[FieldDefinition]:
    """All fields of an entity type in display order (sort_order, then creation)."""
    stmt = (
        select(FieldDefinition)
        .where(FieldDefinition.entity_type == entity_type)
        .order_by(FieldDefinition.sort_order.asc(), FieldDefinition.created_at.asc())
    )
    return list(db.execute(stmt).scalars().all())


def find_field_definition(db: Session, field_id) -> FieldDefinition | None:
    fid = as_uuid(field_id)
    if fid is None:
        return None
    return db.get(FieldDefinition, fid)


def get_field_definition(db: Session, field_id) -> FieldDefinition:
    f = find_field_definition(db, field_id)
    if f is None:
        raise NotFound(f"Field definition {field_id} not found", details={"field_id": str(field_id)})
    return f


def field_name_taken(db: Session, entity_type: str, field_name: str, *, exclude_id=None) -> bool:
    stmt = select(FieldDefinition.id).where(
        FieldDefinition.entity_type == entity_type,
        FieldDefinition.field_name == field_name,
    )
    if exclude_id is not None:
        stmt = stmt.where(FieldDefinition.id != exclude_id)
    return db.execute(stmt).first() is not None


def next_field_number(db: Session, entity_type: str, prefix: str) -> int:
    """1 + the largest numeric suffix among <prefix><digits> names of this entity type."""
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    names = db.execute(
        select(FieldDefinition.field_name).where(FieldDefinition.entity_type == entity_type)
    ).scalars()
    highest = 0
    for name in names:
        m = pattern.match(name or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return highest + 1


def max_sort_order(db: Session, entity_type: str) -> int | None:
    return db.execute(
        select(func.max(FieldDefinition.sort_order)).where(FieldDefinition.entity_type == entity_type)
    ).scalar()


def load_entity_values(db: Session, entity_type: str, entity_id: str) -> dict:
    """Label-keyed custom values of one record ({} when nothing was saved yet)."""
    row = (
        db.query(EntityValues)
        .filter(EntityValues.entity_type == entity_type, EntityValues.entity_id == str(entity_id))
        .one_or_none()
    )
    return dict(row.custom_fields or {}) if row else {}


def save_entity_values(db: Session, entity_type: str, entity_id: str, values: dict) -> EntityValues:
    row = (
        db.query(EntityValues)
        .filter(EntityValues.entity_type == entity_type, EntityValues.entity_id == str(entity_id))
        .one_or_none()
    )
    if row is None:
        row = EntityValues(entity_type=entity_type, entity_id=str(entity_id))
        db.add(row)
    row.custom_fields = dict(values)
    row.updated_at = datetime.utcnow()
    db.flush()
    return row
