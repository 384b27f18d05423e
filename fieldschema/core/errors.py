"""
Typed errors raised by schema mutations and the field store.

Validation of end-user values never raises; it returns a ValidationResult.
Everything here signals an admin/programming mistake in a schema change.
Each error carries a stable ``code`` and a serializable ``details`` dict so the
HTTP layer and the history view can render it without string parsing.
"""

from __future__ import annotations


class SchemaError(Exception):
    """Base class for all field-schema errors."""

    code = "schema_error"
    status_code = 400

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        out = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


class DuplicateFieldName(SchemaError):
    code = "duplicate_field_name"
    status_code = 409


class InvalidReference(SchemaError):
    """A referenced field id is missing, belongs to another entity type, or is not allowed there."""

    code = "invalid_reference"
    status_code = 400


class CyclicDependency(SchemaError):
    code = "cyclic_dependency"
    status_code = 409


class ReadOnlyConflict(SchemaError):
    code = "read_only_conflict"
    status_code = 409


class NotFound(SchemaError):
    code = "not_found"
    status_code = 404


class InvalidFieldType(SchemaError):
    code = "invalid_field_type"
    status_code = 422


class InvalidEntityType(SchemaError):
    code = "invalid_entity_type"
    status_code = 422
