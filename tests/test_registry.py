from datetime import date, datetime

import pytest

from fieldschema.engine import registry
from fieldschema.engine.types import (
    EntityType,
    FieldType,
    LookupType,
    ValueKind,
    parse_entity_type,
    parse_field_type,
    parse_lookup_type,
)
from tests.helpers import build_field


@pytest.fixture()
def phone():
    return build_field("Field_3", "phone", label="Mobile Phone")


@pytest.mark.parametrize("value", ["(212) 555-0100", "(415) 867-5309"])
def test_phone_accepts_formatted_numbers_in_service(phone, value):
    assert registry.check_value(phone, value).is_valid


@pytest.mark.parametrize("value", ["(555) 010-0100", "(212) 055-0100", "(112) 555-0100", "(555) 555-0100"])
def test_phone_rejects_bad_area_or_exchange_even_when_shaped_right(phone, value):
    res = registry.check_value(phone, value)
    assert not res.is_valid
    assert res.reason == "Mobile Phone contains an invalid area code or exchange code (must start with 2-9)"


def test_phone_messages(phone):
    assert registry.check_value(phone, "(212) 555-010").reason == "Mobile Phone must be a complete 10-digit phone number"
    assert registry.check_value(phone, "212-555-0100").reason == "Mobile Phone must be formatted as (XXX) XXX-XXXX"


def test_phone_heuristic_applies_to_text_fields_labelled_phone_but_not_dates():
    assert registry.is_phone_field(build_field("Field_1", "text", label="Office Phone"))
    assert not registry.is_phone_field(build_field("Field_2", "text", label="Phone Screen Date"))


@pytest.mark.parametrize(
    "value,ok",
    [("2024-02-30", False), ("02/29/2024", True), ("02/29/2023", False), ("2024-02-29", True), ("tomorrow", False)],
)
def test_date_validity(value, ok):
    f = build_field("Field_4", "date", label="Start Date")
    assert registry.check_value(f, value).is_valid is ok


def test_date_added_is_always_valid():
    f = build_field("Field_5", "date", label="Date Added")
    assert registry.check_value(f, "whenever").is_valid


def test_date_and_datetime_objects_are_checked_as_values():
    """Test that native date values are not rejected after being stringified"""
    start = build_field("Field_4", "date", label="Start Date")
    assert registry.check_value(start, datetime(2024, 2, 29)).is_valid
    assert registry.check_value(start, date(2024, 2, 29)).is_valid

    at = build_field("Field_6", "datetime", label="Interview At")
    assert registry.check_value(at, datetime(2024, 5, 1, 14, 30)).is_valid
    assert registry.check_value(at, date(2024, 5, 1)).is_valid


def test_list_values_are_rejected_for_scalar_types(phone):
    """Test that a list is not stringified into a scalar check"""
    res = registry.check_value(phone, ["(212) 555-0100"])
    assert not res.is_valid
    assert res.reason == "Mobile Phone must be a single value"

    zip_code = build_field("Field_7", "text", label="Zip Code")
    assert registry.check_value(zip_code, ["12345"]).reason == "Zip Code must be a single value"

    skills = build_field("Field_8", "multiselect", label="Skills", options=["SQL"])
    assert registry.check_value(skills, ["SQL"]).is_valid


def test_datetime_validity():
    f = build_field("Field_6", "datetime", label="Interview At")
    assert registry.check_value(f, "2024-05-01T14:30").is_valid
    assert registry.check_value(f, "05/01/2024 9:05").is_valid
    assert not registry.check_value(f, "2024-05-01 25:00").is_valid


@pytest.mark.parametrize("value,ok", [("1234", False), ("12345", True), ("123456", False), ("1234a", False)])
def test_zip_validity(value, ok):
    f = build_field("Field_7", "text", label="Zip Code")
    res = registry.check_value(f, value)
    assert res.is_valid is ok
    if not ok:
        assert res.reason == "Zip Code must be exactly 5 digits"


def test_count_fields_must_be_non_negative_numbers():
    f = build_field("Field_8", "text", label="Number of Employees")
    assert registry.check_value(f, "1,200").is_valid
    assert registry.check_value(f, "abc").reason == "Number of Employees must be a number"
    assert registry.check_value(f, "-1").reason == "Number of Employees must be 0 or greater"


@pytest.mark.parametrize(
    "value,ok",
    [
        ("https://example.com/jobs?id=1", True),
        ("http://sub.example.co.uk", True),
        ("www.example.com", True),
        ("www.example", False),
        ("https://localhost", False),
        ("https://exa mple.com", False),
        ("https://example.com:99999", False),
    ],
)
def test_url_validity(value, ok):
    f = build_field("Field_9", "text", label="Company Website")
    assert registry.check_value(f, value).is_valid is ok


def test_url_requires_a_known_prefix():
    f = build_field("Field_10", "url", label="Careers Page")
    assert registry.check_value(f, "example.com").reason == "Careers Page must start with http://, https://, or www."


def test_email_and_numbers():
    email = build_field("Field_11", "email", label="Email")
    assert registry.check_value(email, "jane@example.com").is_valid
    assert registry.check_value(email, "jane@example").reason == "Email must be a valid email address"

    salary = build_field("Field_12", "currency", label="Salary")
    assert registry.check_value(salary, "$1,200.50").is_valid
    assert registry.check_value(salary, "lots").reason == "Salary must be a number"


def test_presence_rules():
    checkbox = build_field("Field_13", "checkbox")
    assert registry.is_present(checkbox, "true")
    assert not registry.is_present(checkbox, "false")
    assert not registry.is_present(checkbox, False)

    select = build_field("Field_14", "select")
    assert not registry.is_present(select, "Select an option")
    assert registry.is_present(select, "Option A")

    multi = build_field("Field_15", "multiselect")
    assert not registry.is_present(multi, ["", "  "])
    assert registry.is_present(multi, "a, b")

    text = build_field("Field_16", "text")
    assert not registry.is_present(text, "   ")
    assert not registry.is_present(text, None)


def test_choice_and_lookup_values_are_not_type_checked():
    assert registry.check_value(build_field("Field_17", "lookup"), "42").is_valid
    assert registry.check_value(build_field("Field_18", "multicheckbox"), ["x"]).is_valid


def test_unknown_types_validate_as_text():
    f = build_field("Field_19", "hologram")
    assert registry.field_type_of(f) == FieldType.TEXT
    assert registry.check_value(f, "anything").is_valid


def test_classify():
    assert registry.classify("multiselect_lookup") == ValueKind.LOOKUP
    assert registry.classify("multiSelectLookup") == ValueKind.LOOKUP
    assert registry.classify("percentage") == ValueKind.NUMBER
    assert registry.classify(build_field("Field_20", "checkbox")) == ValueKind.BOOLEAN
    assert registry.classify(None) == ValueKind.TEXT


def test_normalize():
    assert registry.normalize(build_field("a", "date"), "02/29/2024") == "2024-02-29"
    assert registry.normalize(build_field("b", "url"), "www.example.com") == "https://www.example.com"
    assert registry.normalize(build_field("c", "number"), "1,200") == 1200
    assert registry.normalize(build_field("d", "percentage"), "12.5%") == 12.5
    assert registry.normalize(build_field("e", "multiselect"), "a, b,,c") == ["a", "b", "c"]
    assert registry.normalize(build_field("f", "checkbox"), "yes") is True
    assert registry.normalize(build_field("g", "date"), "not a date") == "not a date"


def test_parse_type_names():
    assert parse_field_type("MultiSelect") == FieldType.MULTISELECT
    assert parse_field_type("dropdown") == FieldType.SELECT
    assert parse_field_type("nope") is None
    assert parse_entity_type("jobSeekers") == EntityType.JOB_SEEKER
    assert parse_entity_type("hiring-managers") == EntityType.HIRING_MANAGER
    assert parse_entity_type("organizations") == EntityType.ORGANIZATION
    assert parse_entity_type("planets") is None


def test_parse_lookup_type_names():
    assert parse_lookup_type("hiringManagers") == LookupType.HIRING_MANAGERS
    assert parse_lookup_type("hiring-managers") == LookupType.HIRING_MANAGERS
    assert parse_lookup_type("jobSeekers") == LookupType.JOB_SEEKERS
    assert parse_lookup_type("organization") == LookupType.ORGANIZATIONS
    assert parse_lookup_type("owner") == LookupType.OWNER
    assert parse_lookup_type("") is None
    assert parse_lookup_type("planets") is None
