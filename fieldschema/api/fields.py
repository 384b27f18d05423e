from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from fieldschema.core.security import get_actor
from fieldschema.db.session import get_db
from fieldschema.engine import resolver
from fieldschema.engine.filters import matches_all
from fieldschema.engine.types import CompositeGroup, FilterCriterion
from fieldschema.engine.validation import collect_report
from fieldschema.models.field_definition import FieldDefinition
from fieldschema.schemas.fields import (
    FieldDefinitionCreate,
    FieldDefinitionOut,
    FieldDefinitionUpdate,
    LayoutItemOut,
    ReorderRequest,
)
from fieldschema.schemas.validation import (
    FilterRequest,
    FilterResponse,
    FormValidationRequest,
    RecordValuesOut,
    ValidationError,
    ValidationPreviewResponse,
)
from fieldschema.services import fields as service

router = APIRouter(prefix="/fields", tags=["fields"])


def _field_out(f: FieldDefinition) -> FieldDefinitionOut:
    return FieldDefinitionOut(
        id=str(f.id),
        entity_type=f.entity_type,
        field_name=f.field_name,
        field_label=f.field_label,
        field_type=f.field_type,
        is_required=f.is_required,
        is_hidden=f.is_hidden,
        is_read_only=f.is_read_only,
        sort_order=f.sort_order,
        options=f.options,
        placeholder=f.placeholder,
        default_value=f.default_value,
        lookup_type=f.lookup_type,
        sub_field_ids=resolver.sub_field_ids_of(f) if f.sub_field_ids is not None else None,
        dependent_on_field_id=str(f.dependent_on_field_id) if f.dependent_on_field_id else None,
        role=f.role,
        created_at=f.created_at,
        updated_at=f.updated_at,
        created_by=f.created_by,
        updated_by=f.updated_by,
    )


# ---------- single definitions ----------

@router.get("/definitions/{field_id}", response_model=FieldDefinitionOut)
def get_field_definition(field_id: str, db: Session = Depends(get_db)):
    return _field_out(service.get_field(db, field_id))


@router.patch("/definitions/{field_id}", response_model=FieldDefinitionOut)
def update_field_definition(
    field_id: str,
    payload: FieldDefinitionUpdate,
    db: Session = Depends(get_db),
    actor: str | None = Depends(get_actor),
):
    f = service.update_field(db, field_id, payload, actor=actor)
    db.commit()
    db.refresh(f)
    return _field_out(f)


@router.delete("/definitions/{field_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_field_definition(
    field_id: str,
    db: Session = Depends(get_db),
    actor: str | None = Depends(get_actor),
):
    service.delete_field(db, field_id, actor=actor)
    db.commit()


# ---------- per entity type ----------

@router.get("/{entity_type}", response_model=list[FieldDefinitionOut])
def list_field_definitions(entity_type: str, db: Session = Depends(get_db)):
    return [_field_out(f) for f in service.list_fields(db, entity_type)]


@router.post("/{entity_type}", response_model=FieldDefinitionOut, status_code=status.HTTP_201_CREATED)
def create_field_definition(
    entity_type: str,
    payload: FieldDefinitionCreate,
    db: Session = Depends(get_db),
    actor: str | None = Depends(get_actor),
):
    f = service.create_field(db, entity_type, payload, actor=actor)
    db.commit()
    db.refresh(f)
    return _field_out(f)


@router.put("/{entity_type}/order", response_model=list[FieldDefinitionOut])
def reorder_field_definitions(
    entity_type: str,
    payload: ReorderRequest,
    db: Session = Depends(get_db),
    actor: str | None = Depends(get_actor),
):
    rows = service.reorder_fields(db, entity_type, payload.ordered_ids, actor=actor)
    db.commit()
    return [_field_out(f) for f in rows]


@router.get("/{entity_type}/layout", response_model=list[LayoutItemOut])
def get_layout(
    entity_type: str,
    include_hidden: bool = Query(default=False),
    entity_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    """
    Render plan for a form. With ``entity_id`` the editable flags reflect that
    record's current values (dependency gating); without it only read-only counts.
    """
    fields = service.list_fields(db, entity_type)
    values = service.load_values(db, entity_type, entity_id).as_dict() if entity_id else None

    def editable(f) -> bool:
        if values is None:
            return not f.is_read_only
        return resolver.is_editable(fields, values, f)

    out = []
    for item in resolver.resolve_layout(fields, include_hidden=include_hidden):
        if isinstance(item, CompositeGroup):
            out.append(
                LayoutItemOut(
                    kind="composite",
                    field=_field_out(item.field),
                    sub_fields=[_field_out(s) for s in item.sub_fields],
                    editable=editable(item.field),
                )
            )
        else:
            out.append(LayoutItemOut(kind="field", field=_field_out(item.field), editable=editable(item.field)))
    return out


@router.post("/{entity_type}/validate", response_model=ValidationPreviewResponse)
def validate_values(entity_type: str, payload: FormValidationRequest, db: Session = Depends(get_db)):
    """Preview: first blocking reason plus every error and warning, nothing is saved."""
    fields = service.list_fields(db, entity_type)
    report = collect_report(fields, payload.values)
    return ValidationPreviewResponse(
        is_valid=report.is_valid,
        reason=report.reason,
        errors=[ValidationError(field=e.field, code=e.code, message=e.message) for e in report.errors],
        warnings=[ValidationError(field=e.field, code=e.code, message=e.message) for e in report.warnings],
    )


@router.post("/{entity_type}/filter", response_model=FilterResponse)
def filter_rows(entity_type: str, payload: FilterRequest, db: Session = Depends(get_db)):
    fields = service.list_fields(db, entity_type)
    field_types = {f.field_name: f.field_type for f in fields}
    criteria = [
        (c.field_name, FilterCriterion(c.operator, c.value, c.value_from, c.value_to))
        for c in payload.criteria
    ]
    return FilterResponse(
        matches=[i for i, row in enumerate(payload.rows) if matches_all(row, field_types, criteria)]
    )


# ---------- record values ----------

@router.get("/{entity_type}/records/{entity_id}", response_model=RecordValuesOut)
def get_record_values(entity_type: str, entity_id: str, db: Session = Depends(get_db)):
    values = service.load_values(db, entity_type, entity_id)
    return RecordValuesOut(entity_id=entity_id, values=values.as_dict())


@router.put("/{entity_type}/records/{entity_id}", response_model=RecordValuesOut)
def save_record_values(
    entity_type: str,
    entity_id: str,
    payload: FormValidationRequest,
    db: Session = Depends(get_db),
):
    result = service.save_values(db, entity_type, entity_id, payload.values)
    if not result.is_valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "invalid_values", "message": result.reason},
        )
    db.commit()
    values = service.load_values(db, entity_type, entity_id)
    return RecordValuesOut(entity_id=entity_id, values=values.as_dict())
