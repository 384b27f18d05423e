import uuid
from datetime import datetime

from fieldschema.models.field_definition import FieldDefinition
from fieldschema.schemas.fields import FieldDefinitionCreate
from fieldschema.services import fields as service


def build_field(
    field_name: str,
    field_type: str = "text",
    *,
    label: str | None = None,
    entity_type: str = "job_seeker",
    sort_order: int = 10,
    is_required: bool = False,
    is_hidden: bool = False,
    is_read_only: bool = False,
    field_id: uuid.UUID | None = None,
    **extra,
) -> FieldDefinition:
    """Transient definition for engine tests; never added to a session."""
    now = datetime.utcnow()
    return FieldDefinition(
        id=field_id or uuid.uuid4(),
        entity_type=entity_type,
        field_name=field_name,
        field_label=label if label is not None else field_name,
        field_type=field_type,
        is_required=is_required,
        is_hidden=is_hidden,
        is_read_only=is_read_only,
        sort_order=sort_order,
        created_at=now,
        updated_at=now,
        **extra,
    )


def create_field(db, entity_type: str = "job_seeker", actor: str | None = None, **payload) -> FieldDefinition:
    payload.setdefault("field_type", "text")
    payload.setdefault("field_label", payload.get("field_name") or "Custom Field")
    f = service.create_field(db, entity_type, FieldDefinitionCreate(**payload), actor=actor)
    db.commit()
    db.refresh(f)
    return f


def address_group(db, entity_type: str = "organization", *, required: bool = True):
    street = create_field(db, entity_type, field_label="Street", is_required=True)
    city = create_field(db, entity_type, field_label="City", is_required=True)
    zip_code = create_field(db, entity_type, field_label="Zip Code")
    group = create_field(
        db,
        entity_type,
        field_label="Address",
        field_type="composite",
        is_required=required,
        sub_field_ids=[str(street.id), str(city.id), str(zip_code.id)],
    )
    return group, street, city, zip_code
