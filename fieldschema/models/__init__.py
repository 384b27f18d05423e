from fieldschema.models.audit_event import AuditEvent
from fieldschema.models.entity_values import EntityValues
from fieldschema.models.field_definition import FieldDefinition

__all__ = [ "AuditEvent", "EntityValues", "FieldDefinition" ]
