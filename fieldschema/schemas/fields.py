from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class FieldDefinitionCreate(BaseModel):
    field_name: str | None = Field(default=None, min_length=1, max_length=120)  # Field_<n> when omitted
    field_label: str = Field(min_length=1, max_length=200)
    field_type: str
    is_required: bool = False
    is_hidden: bool = False
    is_read_only: bool = False
    sort_order: int | None = None
    options: list[str] | None = None
    placeholder: str | None = Field(default=None, max_length=500)
    default_value: str | None = None
    lookup_type: str | None = None
    sub_field_ids: list[str] | None = None
    dependent_on_field_id: str | None = None
    role: str | None = Field(default=None, max_length=60)


class FieldDefinitionUpdate(BaseModel):
    """Partial update; only keys the caller sends are applied. entity_type and id are not editable."""

    model_config = ConfigDict(extra="forbid")

    field_name: str | None = Field(default=None, min_length=1, max_length=120)
    field_label: str | None = Field(default=None, min_length=1, max_length=200)
    field_type: str | None = None
    is_required: bool | None = None
    is_hidden: bool | None = None
    is_read_only: bool | None = None
    sort_order: int | None = None
    options: list[str] | None = None
    placeholder: str | None = Field(default=None, max_length=500)
    default_value: str | None = None
    lookup_type: str | None = None
    sub_field_ids: list[str] | None = None
    dependent_on_field_id: str | None = None
    role: str | None = Field(default=None, max_length=60)


class FieldDefinitionOut(BaseModel):
    id: str
    entity_type: str
    field_name: str
    field_label: str
    field_type: str
    is_required: bool
    is_hidden: bool
    is_read_only: bool
    sort_order: int
    options: list[str] | None = None
    placeholder: str | None = None
    default_value: str | None = None
    lookup_type: str | None = None
    sub_field_ids: list[str] | None = None
    dependent_on_field_id: str | None = None
    role: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None


class ReorderRequest(BaseModel):
    ordered_ids: list[str]


class LayoutItemOut(BaseModel):
    kind: str  # "field" | "composite"
    field: FieldDefinitionOut
    sub_fields: list[FieldDefinitionOut] = []
    editable: bool = True


class AuditEventOut(BaseModel):
    id: str
    action: str
    entity_type: str
    field_id: str
    changed_attributes: list[str] | None
    before_values: dict | None
    after_values: dict | None
    actor: str | None
    timestamp: datetime
