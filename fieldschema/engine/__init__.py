from fieldschema.engine.filters import compare_values, matches_criterion, natural_key
from fieldschema.engine.registry import classify, is_present, is_valid, normalize
from fieldschema.engine.resolver import is_editable, resolve_layout
from fieldschema.engine.types import (
    CompositeGroup,
    EntityType,
    FieldType,
    FilterCriterion,
    LookupType,
    StandaloneField,
    ValidationResult,
)
from fieldschema.engine.validation import validate_field, validate_form
from fieldschema.engine.values import FieldValues, to_field_name_keyed, to_label_keyed

__all__ = [
    "classify", "compare_values", "is_editable", "is_present", "is_valid",
    "matches_criterion", "natural_key", "normalize", "resolve_layout",
    "to_field_name_keyed", "to_label_keyed", "validate_field", "validate_form",
    "CompositeGroup", "EntityType", "FieldType", "FieldValues", "FilterCriterion",
    "LookupType", "StandaloneField", "ValidationResult",
]
