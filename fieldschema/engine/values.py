"""
Runtime field values are keyed by ``field_name``; the persisted JSON blob on each
record is keyed by ``field_label`` (legacy record schema). This module is the
only place that converts between the two.

Labels are not unique, so a label is used as the storage key only when it
identifies exactly one field; otherwise the field name is used. That keeps the
conversion lossless in both directions.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping, Sequence

from fieldschema.engine import registry
from fieldschema.engine.types import MULTI_VALUE_TYPES


def storage_keys(fields: Sequence[Any]) -> dict[str, str]:
    """field_name -> key used in the persisted blob."""
    label_counts: dict[str, int] = {}
    for f in fields:
        label = (f.field_label or "").strip()
        if label:
            label_counts[label] = label_counts.get(label, 0) + 1
    names = {f.field_name for f in fields}

    out: dict[str, str] = {}
    for f in fields:
        label = (f.field_label or "").strip()
        clashes_with_name = label in names and label != f.field_name
        if label and label_counts[label] == 1 and not clashes_with_name:
            out[f.field_name] = label
        else:
            out[f.field_name] = f.field_name
    return out


def to_label_keyed(values: Mapping[str, Any], fields: Sequence[Any]) -> dict[str, Any]:
    keys = storage_keys(fields)
    return {keys[name]: value for name, value in values.items() if name in keys}


def to_field_name_keyed(stored: Mapping[str, Any], fields: Sequence[Any]) -> dict[str, Any]:
    keys = storage_keys(fields)
    out: dict[str, Any] = {}
    for name, key in keys.items():
        if key in stored:
            out[name] = stored[key]
        elif name in stored:
            # blobs written before the label became unique
            out[name] = stored[name]
    return out


def initial_values(fields: Sequence[Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields:
        if registry.field_type_of(f) in MULTI_VALUE_TYPES:
            out[f.field_name] = registry.split_multi(f.default_value)
        else:
            out[f.field_name] = f.default_value or ""
    return out


def submission_payload(fields: Sequence[Any], values: Mapping[str, Any]) -> dict[str, Any]:
    """Label-keyed blob for saving a form: hidden fields dropped, values normalised (dates to YYYY-MM-DD)."""
    visible = [f for f in fields if not f.is_hidden]
    normalised = {
        f.field_name: registry.normalize(f, values[f.field_name])
        for f in visible
        if f.field_name in values
    }
    return to_label_keyed(normalised, fields)


def merge_into_stored(stored: Mapping[str, Any] | None, fields: Sequence[Any], values: Mapping[str, Any]) -> dict[str, Any]:
    """
    Write a submission over an existing blob. Keys no definition owns and the
    stored values of hidden fields are kept as they are.
    """
    out = dict(stored or {})
    keys = storage_keys(fields)
    for f in fields:
        if f.is_hidden or f.field_name not in values:
            continue
        if keys[f.field_name] != f.field_name:
            # superseded by the label key
            out.pop(f.field_name, None)
    out.update(submission_payload(fields, values))
    return out


class FieldValues:
    """Value map for one record, indexed by field name, bound to its field set."""

    def __init__(self, fields: Sequence[Any], values: Mapping[str, Any] | None = None) -> None:
        self.fields = list(fields)
        self._by_name = {f.field_name: f for f in self.fields}
        self._values = initial_values(self.fields)
        for name, value in (values or {}).items():
            self.set(name, value)

    @classmethod
    def from_stored(cls, fields: Sequence[Any], stored: Mapping[str, Any] | None) -> "FieldValues":
        return cls(fields, to_field_name_keyed(stored or {}, fields))

    def set(self, field_name: str, value: Any) -> None:
        if field_name not in self._by_name:
            raise KeyError(f"Unknown field: {field_name}")
        self._values[field_name] = value

    def get(self, field_name: str, default: Any = None) -> Any:
        return self._values.get(field_name, default)

    def __getitem__(self, field_name: str) -> Any:
        return self._values[field_name]

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)

    def to_stored(self, stored: Mapping[str, Any] | None = None) -> dict[str, Any]:
        if stored is None:
            return submission_payload(self.fields, self._values)
        return merge_into_stored(stored, self.fields, self._values)
