from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fieldschema.db.session import get_db
from fieldschema.engine.types import parse_entity_type
from fieldschema.core.errors import InvalidEntityType
from fieldschema.models.audit_event import AuditEvent
from fieldschema.repositories.fields import as_uuid
from fieldschema.schemas.fields import AuditEventOut

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=list[AuditEventOut])
def list_audit_events(
    entity_type: str | None = Query(default=None),
    field_id: str | None = Query(default=None),
    limit: int = Query(default=50, le=200),
    db: Session = Depends(get_db),
):
    """Schema change history, newest first."""
    q = db.query(AuditEvent)

    if entity_type:
        etype = parse_entity_type(entity_type)
        if etype is None:
            raise InvalidEntityType(f"Unknown entity type: {entity_type}", details={"entity_type": entity_type})
        q = q.filter(AuditEvent.entity_type == etype.value)
    if field_id:
        fid = as_uuid(field_id)
        if fid is None:
            return []
        q = q.filter(AuditEvent.field_id == fid)

    rows = q.order_by(AuditEvent.created_at.desc()).limit(limit).all()

    return [
        AuditEventOut(
            id=str(r.id),
            action=r.action,
            entity_type=r.entity_type,
            field_id=str(r.field_id),
            changed_attributes=r.changed_attributes,
            before_values=r.before_values,
            after_values=r.after_values,
            actor=r.actor,
            timestamp=r.created_at,
        )
        for r in rows
    ]
