from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EntityType(str, Enum):
    ORGANIZATION = "organization"
    JOB_SEEKER = "job_seeker"
    HIRING_MANAGER = "hiring_manager"
    JOB = "job"
    LEAD = "lead"
    TASK = "task"
    PLACEMENT = "placement"


class FieldType(str, Enum):
    TEXT = "text"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    PERCENTAGE = "percentage"
    DATE = "date"
    CURRENCY = "currency"
    DATETIME = "datetime"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    MULTICHECKBOX = "multicheckbox"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    URL = "url"
    LINK = "link"
    FILE = "file"
    LOOKUP = "lookup"
    MULTISELECT_LOOKUP = "multiselect_lookup"
    COMPOSITE = "composite"


class LookupType(str, Enum):
    ORGANIZATIONS = "organizations"
    HIRING_MANAGERS = "hiring_managers"
    JOB_SEEKERS = "job_seekers"
    JOBS = "jobs"
    OWNER = "owner"


class ValueKind(str, Enum):
    """Semantic classification shared by validation and list filtering."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    BOOLEAN = "boolean"
    EMAIL = "email"
    PHONE = "phone"
    URL = "url"
    CHOICE = "choice"
    MULTI = "multi"
    LOOKUP = "lookup"
    COMPOSITE = "composite"


OPTION_TYPES = frozenset(
    {FieldType.SELECT, FieldType.RADIO, FieldType.MULTISELECT, FieldType.MULTICHECKBOX}
)
LOOKUP_TYPES = frozenset({FieldType.LOOKUP, FieldType.MULTISELECT_LOOKUP})
MULTI_VALUE_TYPES = frozenset(
    {FieldType.MULTISELECT, FieldType.MULTICHECKBOX, FieldType.MULTISELECT_LOOKUP}
)
NUMERIC_TYPES = frozenset({FieldType.NUMBER, FieldType.CURRENCY, FieldType.PERCENTAGE})


def parse_field_type(value: Any) -> FieldType | None:
    """Lenient lookup: accepts enum members, values, and the camelCase/dashed spellings."""
    if isinstance(value, FieldType):
        return value
    if value is None:
        return None
    raw = str(value).strip()
    try:
        return FieldType(raw.lower())
    except ValueError:
        pass
    aliases = {
        "multiselectlookup": FieldType.MULTISELECT_LOOKUP,
        "multiselect-lookup": FieldType.MULTISELECT_LOOKUP,
        "percent": FieldType.PERCENTAGE,
        "dropdown": FieldType.SELECT,
        # list-page columns such as "Hidden" / "Required" are boolean-like
        "boolean": FieldType.CHECKBOX,
        "bool": FieldType.CHECKBOX,
    }
    return aliases.get(raw.lower())


def _snake(value: Any) -> str:
    return re.sub(r"(?<=[a-z])([A-Z])", r"_\1", str(value).strip()).lower().replace("-", "_")


def parse_entity_type(value: Any) -> EntityType | None:
    """Accepts job_seeker, jobSeeker, job-seekers and friends."""
    if isinstance(value, EntityType):
        return value
    if value is None:
        return None
    raw = _snake(value)
    for candidate in (raw, raw[:-1] if raw.endswith("s") else None):
        if candidate:
            try:
                return EntityType(candidate)
            except ValueError:
                continue
    return None


def parse_lookup_type(value: Any) -> LookupType | None:
    """Accepts hiring_managers, hiringManagers, hiring-managers and the singular forms."""
    if isinstance(value, LookupType):
        return value
    if value is None or str(value).strip() == "":
        return None
    raw = _snake(value)
    for candidate in (raw, raw + "s"):
        try:
            return LookupType(candidate)
        except ValueError:
            continue
    return None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    reason: str | None = None

    def as_dict(self) -> dict:
        out: dict[str, Any] = {"is_valid": self.is_valid}
        if self.reason is not None:
            out["reason"] = self.reason
        return out


VALID = ValidationResult(True)


@dataclass(frozen=True)
class FieldError:
    field: str
    code: str  # required, invalid
    message: str


@dataclass(frozen=True)
class FilterCriterion:
    operator: str
    value: str | None = None
    value_from: str | None = None
    value_to: str | None = None


@dataclass
class CompositeGroup:
    field: Any
    sub_fields: list[Any] = field(default_factory=list)

    @property
    def anchor(self) -> Any:
        return self.sub_fields[0] if self.sub_fields else None


@dataclass
class StandaloneField:
    field: Any
