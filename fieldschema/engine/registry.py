"""
Field type registry.

Single source of truth for "is this value usable for this field". Every form,
list filter and import path goes through these helpers instead of carrying its
own phone / zip / url heuristics.

Everything here is pure: no storage, no entity-type knowledge, no logging.
Functions accept any field-shaped object (ORM row or API schema).
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any
from urllib.parse import urlsplit

from fieldschema.engine.area_codes import US_AREA_CODES
from fieldschema.engine.types import (
    LOOKUP_TYPES,
    MULTI_VALUE_TYPES,
    NUMERIC_TYPES,
    VALID,
    FieldType,
    ValidationResult,
    ValueKind,
    parse_field_type,
)

SELECT_PLACEHOLDER = "select an option"

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$")
ZIP_RE = re.compile(r"^\d{5}$")
ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
DATETIME_RE = re.compile(
    r"^(?P<date>[\d/-]+)"
    r"(?:[T ](?P<time>\d{1,2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?)(?P<tz>Z|[+-]\d{2}:?\d{2})?)?$"
)
URL_PREFIX_RE = re.compile(r"^(https?://|www\.)", re.IGNORECASE)

TRUE_STRINGS = frozenset({"yes", "true", "1", "on", "checked", "y"})
FALSE_STRINGS = frozenset({"no", "false", "0", "off", "unchecked", "n"})

_KINDS: dict[FieldType, ValueKind] = {
    FieldType.TEXT: ValueKind.TEXT,
    FieldType.TEXTAREA: ValueKind.TEXT,
    FieldType.FILE: ValueKind.TEXT,
    FieldType.EMAIL: ValueKind.EMAIL,
    FieldType.PHONE: ValueKind.PHONE,
    FieldType.NUMBER: ValueKind.NUMBER,
    FieldType.PERCENTAGE: ValueKind.NUMBER,
    FieldType.CURRENCY: ValueKind.NUMBER,
    FieldType.DATE: ValueKind.DATE,
    FieldType.DATETIME: ValueKind.DATETIME,
    FieldType.SELECT: ValueKind.CHOICE,
    FieldType.RADIO: ValueKind.CHOICE,
    FieldType.MULTISELECT: ValueKind.MULTI,
    FieldType.MULTICHECKBOX: ValueKind.MULTI,
    FieldType.CHECKBOX: ValueKind.BOOLEAN,
    FieldType.URL: ValueKind.URL,
    FieldType.LINK: ValueKind.URL,
    FieldType.LOOKUP: ValueKind.LOOKUP,
    FieldType.MULTISELECT_LOOKUP: ValueKind.LOOKUP,
    FieldType.COMPOSITE: ValueKind.COMPOSITE,
}


# ---------- field introspection ----------

def field_type_of(field: Any) -> FieldType:
    # unknown types validate as plain text so the registry stays total
    return parse_field_type(getattr(field, "field_type", None)) or FieldType.TEXT


def display_name(field: Any) -> str:
    return (getattr(field, "field_label", None) or getattr(field, "field_name", None) or "Field").strip()


def _label(field: Any) -> str:
    return (getattr(field, "field_label", None) or "").strip().lower()


def _name(field: Any) -> str:
    return (getattr(field, "field_name", None) or "").strip().lower()


def is_date_like(field: Any) -> bool:
    return field_type_of(field) in (FieldType.DATE, FieldType.DATETIME) or "date" in _label(field)


def is_zip_field(field: Any) -> bool:
    label, name = _label(field), _name(field)
    return "zip" in label or "postal code" in label or "zip" in name or "postal" in name


def is_count_field(field: Any) -> bool:
    label, name = _label(field), _name(field)
    return (
        any(k in label for k in ("employees", "offices", "oasis key"))
        or any(k in name for k in ("employees", "offices", "oasis"))
    )


def is_phone_field(field: Any) -> bool:
    if is_date_like(field):
        return False
    return field_type_of(field) == FieldType.PHONE or "phone" in _label(field)


def is_url_field(field: Any) -> bool:
    if field_type_of(field) in (FieldType.URL, FieldType.LINK):
        return True
    label = _label(field)
    return any(k in label for k in ("website", "url", "linkedin"))


def classify(field_or_type: Any) -> ValueKind:
    """Semantic kind of a field (or a bare field type string)."""
    if isinstance(field_or_type, (str, FieldType)) or field_or_type is None:
        ftype = parse_field_type(field_or_type) or FieldType.TEXT
    else:
        ftype = field_type_of(field_or_type)
    return _KINDS.get(ftype, ValueKind.TEXT)


# ---------- parsers ----------

def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        return None
    s = str(value).strip()
    m = ISO_DATE_RE.match(s)
    if m:
        y, mo, d = m.groups()
    else:
        m = US_DATE_RE.match(s)
        if not m:
            return None
        mo, d, y = m.groups()
    try:
        return date(int(y), int(mo), int(d))
    except ValueError:
        return None


def parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if value is None:
        return None
    m = DATETIME_RE.match(str(value).strip())
    if not m:
        return None
    d = parse_date(m.group("date"))
    if d is None:
        return None
    if not m.group("time"):
        return datetime(d.year, d.month, d.day)
    tz = m.group("tz") or ""
    if tz == "Z":
        tz = "+00:00"
    hh, rest = m.group("time").split(":", 1)
    try:
        return datetime.fromisoformat(f"{d.isoformat()}T{int(hh):02d}:{rest}{tz}")
    except ValueError:
        return None


def parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if value is None:
        return None
    s = str(value).strip().replace(",", "")
    if s.startswith("$"):
        s = s[1:]
    if s.endswith("%"):
        s = s[:-1]
    if not s:
        return None
    try:
        n = float(s)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def parse_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    s = str(value).strip().lower()
    if s in TRUE_STRINGS:
        return True
    if s in FALSE_STRINGS:
        return False
    return None


def split_multi(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        items = [str(v).strip() for v in value if v is not None]
    else:
        items = [part.strip() for part in str(value).split(",")]
    return [i for i in items if i]


# ---------- presence / validity ----------

def is_present(field: Any, value: Any) -> bool:
    """Whether the field has a value at all (before any semantic checking)."""
    if value is None:
        return False
    ftype = field_type_of(field)

    if ftype == FieldType.CHECKBOX:
        return parse_bool(value) is True

    if isinstance(value, (list, tuple, set)) or ftype in MULTI_VALUE_TYPES:
        return bool(split_multi(value))

    s = str(value).strip()
    if not s:
        return False
    if ftype in (FieldType.SELECT, FieldType.RADIO) and s.lower() == SELECT_PLACEHOLDER:
        return False
    return True


def check_value(field: Any, value: Any) -> ValidationResult:
    """
    Semantic check of a present value. Returns a display-ready reason on failure.
    Callers decide what an absent value means (see validation.validate_field).
    """
    if not is_present(field, value):
        return ValidationResult(False, f"{display_name(field)} is required")

    ftype = field_type_of(field)
    name = display_name(field)

    if ftype in (FieldType.SELECT, FieldType.RADIO) or ftype in MULTI_VALUE_TYPES:
        return VALID
    if ftype in LOOKUP_TYPES or ftype in (FieldType.COMPOSITE, FieldType.CHECKBOX, FieldType.FILE):
        return VALID

    if isinstance(value, (list, tuple, set)):
        return ValidationResult(False, f"{name} must be a single value")

    if ftype == FieldType.DATE:
        if _label(field) == "date added":
            return VALID
        if parse_date(value) is None:
            return ValidationResult(False, f"{name} must be a valid date (YYYY-MM-DD or MM/DD/YYYY)")
        return VALID

    if ftype == FieldType.DATETIME:
        if parse_datetime(value) is None:
            return ValidationResult(False, f"{name} must be a valid date and time")
        return VALID

    s = str(value).strip()

    if is_zip_field(field):
        if not ZIP_RE.match(s):
            return ValidationResult(False, f"{name} must be exactly 5 digits")
        return VALID

    if is_count_field(field):
        n = parse_number(s)
        if n is None:
            return ValidationResult(False, f"{name} must be a number")
        if n < 0:
            return ValidationResult(False, f"{name} must be 0 or greater")
        return VALID

    if is_phone_field(field):
        return _check_phone(name, s)

    if is_url_field(field):
        return _check_url(name, s)

    if ftype == FieldType.EMAIL:
        if not EMAIL_RE.match(s):
            return ValidationResult(False, f"{name} must be a valid email address")
        return VALID

    if ftype in NUMERIC_TYPES:
        if parse_number(s) is None:
            return ValidationResult(False, f"{name} must be a number")
        return VALID

    return VALID


def is_valid(field: Any, value: Any) -> bool:
    return check_value(field, value).is_valid


def is_valid_us_phone(value: str) -> bool:
    """NANP check on the digits: area code and exchange start 2-9, area code in service."""
    digits = re.sub(r"\D", "", value or "")
    if len(digits) != 10:
        return False
    area, exchange = digits[:3], digits[3:6]
    if area[0] in "01" or exchange[0] in "01":
        return False
    return area in US_AREA_CODES


def _check_phone(name: str, s: str) -> ValidationResult:
    digits = re.sub(r"\D", "", s)
    if len(digits) != 10:
        return ValidationResult(False, f"{name} must be a complete 10-digit phone number")
    if not PHONE_RE.match(s):
        return ValidationResult(False, f"{name} must be formatted as (XXX) XXX-XXXX")
    if not is_valid_us_phone(s):
        return ValidationResult(
            False, f"{name} contains an invalid area code or exchange code (must start with 2-9)"
        )
    return VALID


def _valid_host(host: str) -> bool:
    labels = host.split(".")
    return len(labels) >= 2 and all(labels) and len(labels[-1]) >= 2


def _check_url(name: str, s: str) -> ValidationResult:
    if not URL_PREFIX_RE.match(s):
        return ValidationResult(False, f"{name} must start with http://, https://, or www.")
    invalid = ValidationResult(False, f"{name} must be a valid URL")
    if any(ch.isspace() for ch in s):
        return invalid

    if s.lower().startswith("www."):
        # www.example alone is not a complete domain
        if not _valid_host(s[4:].split("/")[0].split(":")[0]):
            return invalid
        candidate = f"https://{s}"
    else:
        candidate = s

    try:
        parts = urlsplit(candidate)
        parts.port  # raises on a malformed port
    except ValueError:
        return invalid
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        return invalid
    if not _valid_host(parts.hostname):
        return invalid
    return VALID


# ---------- normalisation ----------

def normalize_url(value: str) -> str:
    s = value.strip()
    return f"https://{s}" if s.lower().startswith("www.") else s


def normalize(field: Any, value: Any) -> Any:
    """Canonical form of a value for storage and comparison; unparseable input is returned trimmed."""
    if value is None:
        return None
    ftype = field_type_of(field)

    if ftype in MULTI_VALUE_TYPES:
        return split_multi(value)

    if ftype == FieldType.CHECKBOX:
        b = parse_bool(value)
        return b if b is not None else str(value).strip()

    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None]

    s = value.strip() if isinstance(value, str) else value

    if ftype == FieldType.DATE:
        d = parse_date(s)
        return d.isoformat() if d else s
    if ftype == FieldType.DATETIME:
        dt = parse_datetime(s)
        return dt.isoformat() if dt else s
    if ftype in NUMERIC_TYPES:
        n = parse_number(s)
        if n is None:
            return s
        return int(n) if n.is_integer() else n
    if is_url_field(field) and isinstance(s, str):
        return normalize_url(s)
    return s
