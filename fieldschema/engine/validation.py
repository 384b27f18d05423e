from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from fieldschema.engine import registry, resolver
from fieldschema.engine.types import VALID, CompositeGroup, FieldError, ValidationResult


@dataclass
class FormReport:
    """Full picture for preview screens: blocking errors plus non-blocking warnings."""

    is_valid: bool
    reason: str | None = None
    errors: list[FieldError] = field(default_factory=list)
    warnings: list[FieldError] = field(default_factory=list)


def validate_field(definition: Any, value: Any) -> ValidationResult:
    """
    Single field: an absent value fails only when the field is required;
    a present value must pass its type rules.
    """
    if not registry.is_present(definition, value):
        if definition.is_required:
            return ValidationResult(False, f"{registry.display_name(definition)} is required")
        return VALID
    return registry.check_value(definition, value)


def _required_result(definition: Any, value: Any) -> ValidationResult:
    """Required-satisfaction check used for submit gating."""
    if not registry.is_present(definition, value):
        return ValidationResult(False, f"{registry.display_name(definition)} is required")
    return registry.check_value(definition, value)


def _group_required(group: Any, sub: Any) -> bool:
    # a hidden sub-field is excused unless it is itself required
    return bool(sub.is_required or (group.is_required and not sub.is_hidden))


def _check_group(fields: Sequence[Any], group: Any, values: Mapping[str, Any]) -> tuple[Any, ValidationResult] | None:
    for sub in resolver.sub_fields_of(fields, group):
        if not _group_required(group, sub):
            continue
        res = _required_result(sub, values.get(sub.field_name))
        if not res.is_valid:
            label = registry.display_name(group)
            return sub, ValidationResult(False, f"{label}: {res.reason}")
    return None


def _walk(fields: Sequence[Any], values: Mapping[str, Any]):
    """Yields (field, result, blocking) for every failing item in layout order."""
    for item in resolver.resolve_layout(fields):
        if isinstance(item, CompositeGroup):
            failed = _check_group(fields, item.field, values)
            if failed is not None:
                yield failed[0], failed[1], True
            continue

        f = item.field
        value = values.get(f.field_name)
        if f.is_required:
            res = _required_result(f, value)
            if not res.is_valid:
                yield f, res, True
        elif registry.is_present(f, value):
            res = registry.check_value(f, value)
            if not res.is_valid:
                yield f, res, False


def validate_form(definitions: Sequence[Any], values: Mapping[str, Any]) -> ValidationResult:
    """
    Submit gating. Hidden fields are ignored, optional fields never block, and a
    composite group is satisfied only when each of its required sub-fields is.
    Returns the first unmet item in display order.
    """
    for _, res, blocking in _walk(definitions, values):
        if blocking:
            return res
    return VALID


def collect_report(definitions: Sequence[Any], values: Mapping[str, Any]) -> FormReport:
    report = FormReport(is_valid=True)
    for f, res, blocking in _walk(definitions, values):
        present = registry.is_present(f, values.get(f.field_name))
        err = FieldError(
            field=f.field_name,
            code=("invalid" if present else "required"),
            message=res.reason or "",
        )
        if blocking:
            report.errors.append(err)
            if report.is_valid:
                report.is_valid = False
                report.reason = res.reason
        else:
            report.warnings.append(err)
    return report
