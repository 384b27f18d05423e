from typing import Any

from pydantic import BaseModel


class ValidationError(BaseModel):
    """Individual validation error"""
    field: str
    code: str  # required, invalid
    message: str


class FormValidationRequest(BaseModel):
    values: dict[str, Any]  # keyed by field_name


class ValidationPreviewResponse(BaseModel):
    """Response from validation preview endpoint"""
    is_valid: bool
    reason: str | None = None
    errors: list[ValidationError]
    warnings: list[ValidationError]  # optional fields holding bad values; non-blocking


class CriterionIn(BaseModel):
    field_name: str
    operator: str
    value: str | None = None
    value_from: str | None = None
    value_to: str | None = None


class FilterRequest(BaseModel):
    """Rows keyed by field_name; a row matches when it satisfies every criterion."""
    rows: list[dict[str, Any]]
    criteria: list[CriterionIn]


class FilterResponse(BaseModel):
    matches: list[int]  # indexes into the request rows


class RecordValuesOut(BaseModel):
    entity_id: str
    values: dict[str, Any]  # keyed by field_name
