import uuid

import pytest

from fieldschema.core.errors import (
    CyclicDependency,
    DuplicateFieldName,
    InvalidEntityType,
    InvalidFieldType,
    InvalidReference,
    NotFound,
    ReadOnlyConflict,
)
from fieldschema.models.audit_event import AuditEvent
from fieldschema.schemas.fields import FieldDefinitionCreate, FieldDefinitionUpdate
from fieldschema.services import fields as service
from tests.helpers import address_group, create_field


def _update(db, f, actor=None, **changes):
    out = service.update_field(db, f.id, FieldDefinitionUpdate(**changes), actor=actor)
    db.commit()
    return out


def _events(db, f):
    return db.query(AuditEvent).filter(AuditEvent.field_id == f.id).all()


# ---------- create ----------

def test_auto_names_continue_after_highest_number(db_session):
    """Test that auto-generated names continue after the highest number per entity type"""
    a = create_field(db_session, "job", field_label="Department")
    b = create_field(db_session, "job", field_label="Team")
    create_field(db_session, "job", field_name="Field_7", field_label="Legacy")
    c = create_field(db_session, "job", field_label="Budget")
    other = create_field(db_session, "lead", field_label="Source")

    assert (a.field_name, b.field_name, c.field_name) == ("Field_1", "Field_2", "Field_8")
    # numbering is per entity type
    assert other.field_name == "Field_1"


def test_sort_order_defaults_to_next_step(db_session):
    """Test that new fields land on the next sort order step"""
    a = create_field(db_session, field_label="A")
    b = create_field(db_session, field_label="B")
    create_field(db_session, field_label="C", sort_order=25)
    d = create_field(db_session, field_label="D")
    assert (a.sort_order, b.sort_order, d.sort_order) == (10, 20, 30)


def test_entity_type_spellings_are_normalised(db_session):
    """Test that entity type spellings are normalised and unknown ones rejected"""
    f = create_field(db_session, "hiringManagers", field_label="Title")
    assert f.entity_type == "hiring_manager"

    with pytest.raises(InvalidEntityType):
        service.create_field(db_session, "planets", FieldDefinitionCreate(field_label="X", field_type="text"))


def test_create_records_audit_with_actor(db_session):
    """Test that creating a field records a CREATE event with the actor"""
    f = create_field(db_session, field_label="Degree", actor="admin@local.test")
    events = _events(db_session, f)
    assert len(events) == 1
    assert events[0].action == "CREATE"
    assert events[0].actor == "admin@local.test"
    assert events[0].after_values["field_label"] == "Degree"
    assert f.created_by == "admin@local.test"


def test_create_required_and_hidden_keeps_required(db_session):
    """Test that required wins when a field is created required and hidden"""
    f = create_field(db_session, field_label="Both", is_required=True, is_hidden=True)
    assert f.is_required is True
    assert f.is_hidden is False


def test_create_read_only_is_never_required(db_session):
    """Test that a read-only field is created not required"""
    f = create_field(db_session, field_label="Locked", is_required=True, is_read_only=True)
    assert f.is_read_only is True
    assert f.is_required is False


def test_type_specific_attributes(db_session):
    """Test that options and lookup types follow the field type"""
    select = create_field(db_session, field_label="Status", field_type="select", options=["Open", "", "Closed"])
    assert select.options == ["Open", "", "Closed"]

    text = create_field(db_session, field_label="Plain", options=["ignored"], lookup_type="jobs")
    assert text.options is None
    assert text.lookup_type is None

    lookup = create_field(db_session, field_label="Company", field_type="lookup")
    assert lookup.lookup_type == "organizations"

    manager = create_field(db_session, field_label="Manager", field_type="lookup", lookup_type="hiringManagers")
    assert manager.lookup_type == "hiring_managers"
    seekers = create_field(
        db_session, field_label="Referrals", field_type="multiselect_lookup", lookup_type="job-seekers"
    )
    assert seekers.lookup_type == "job_seekers"
    seekers = _update(db_session, seekers, lookup_type="hiringManager")
    assert seekers.lookup_type == "hiring_managers"

    with pytest.raises(InvalidFieldType):
        service.create_field(db_session, "job_seeker", FieldDefinitionCreate(field_label="X", field_type="hologram"))
    with pytest.raises(InvalidFieldType):
        service.create_field(
            db_session,
            "job_seeker",
            FieldDefinitionCreate(field_label="X", field_type="lookup", lookup_type="planets"),
        )


def test_duplicate_explicit_name_is_rejected(db_session):
    """Test that an explicit duplicate name is rejected within an entity type"""
    create_field(db_session, field_name="Field_3", field_label="A")
    with pytest.raises(DuplicateFieldName):
        service.create_field(
            db_session, "job_seeker", FieldDefinitionCreate(field_name="Field_3", field_label="B", field_type="text")
        )
    # same name in another entity type is fine
    assert create_field(db_session, "job", field_name="Field_3", field_label="B").field_name == "Field_3"


def test_auto_name_collision_is_retried(db_session, monkeypatch):
    """Test that a colliding auto-generated name is retried with the next number"""
    create_field(db_session, field_label="Existing")
    numbers = iter([1, 2])
    monkeypatch.setattr(service.store, "next_field_number", lambda db, et, prefix: next(numbers))

    f = create_field(db_session, field_label="Racer")
    assert f.field_name == "Field_2"


def test_auto_name_retry_keeps_pending_work_in_session(db_session, monkeypatch):
    """Test that a name retry keeps uncommitted work of the same session"""
    create_field(db_session, field_label="Existing")
    pending = service.create_field(
        db_session, "job_seeker", FieldDefinitionCreate(field_label="Pending", field_type="text")
    )
    numbers = iter([1, 3])
    monkeypatch.setattr(service.store, "next_field_number", lambda db, et, prefix: next(numbers))

    racer = service.create_field(db_session, "job_seeker", FieldDefinitionCreate(field_label="Racer", field_type="text"))
    db_session.commit()

    labels = [f.field_label for f in service.list_fields(db_session, "job_seeker")]
    assert labels == ["Existing", "Pending", "Racer"]
    assert (pending.field_name, racer.field_name) == ("Field_2", "Field_3")
    assert [e.action for e in _events(db_session, pending)] == ["CREATE"]


def test_create_reference_checks(db_session):
    """Test that invalid dependency and sub-field references are rejected on create"""
    hidden = create_field(db_session, field_label="Hidden", is_hidden=True)
    group, *_ = address_group(db_session, "job_seeker")
    elsewhere = create_field(db_session, "job", field_label="Elsewhere")

    def attempt(**payload):
        payload.setdefault("field_type", "text")
        service.create_field(db_session, "job_seeker", FieldDefinitionCreate(field_label="New", **payload))

    with pytest.raises(InvalidReference):
        attempt(dependent_on_field_id=str(uuid.uuid4()))
    with pytest.raises(InvalidReference, match="belongs to entity type job"):
        attempt(dependent_on_field_id=str(elsewhere.id))
    with pytest.raises(InvalidReference, match="Hidden field"):
        attempt(dependent_on_field_id=str(hidden.id))
    with pytest.raises(InvalidReference, match="Composite field"):
        attempt(dependent_on_field_id=str(group.id))
    with pytest.raises(InvalidReference, match="nested"):
        attempt(field_type="composite", sub_field_ids=[str(group.id)])
    with pytest.raises(InvalidReference, match="cannot depend"):
        attempt(field_type="composite", dependent_on_field_id=str(hidden.id))


# ---------- update ----------

def test_setting_required_unhides_field(db_session):
    """Test that making a hidden field required unhides it"""
    f = create_field(db_session, "job", field_label="Secret", is_hidden=True)
    f = _update(db_session, f, is_required=True)
    assert f.is_required is True
    assert f.is_hidden is False


def test_hiding_required_field_drops_required(db_session):
    """Test that hiding a required field drops required"""
    f = create_field(db_session, field_label="Email", field_type="email", is_required=True)
    f = _update(db_session, f, is_hidden=True)
    assert f.is_hidden is True
    assert f.is_required is False


def test_read_only_coerces_required_off(db_session):
    """Test that setting read-only turns required off"""
    f = create_field(db_session, field_label="Source", is_required=True)
    f = _update(db_session, f, is_read_only=True)
    assert f.is_read_only is True
    assert f.is_required is False


def test_requiring_read_only_field_conflicts(db_session):
    """Test that requiring a field that stays read-only is a conflict"""
    f = create_field(db_session, field_label="Source", is_read_only=True)
    with pytest.raises(ReadOnlyConflict):
        _update(db_session, f, is_required=True)
    with pytest.raises(ReadOnlyConflict):
        _update(db_session, f, is_required=True, field_label="Still locked")

    # lifting read-only in the same request is allowed
    f = _update(db_session, f, is_required=True, is_read_only=False)
    assert f.is_required is True


def test_dependency_cycle_is_rejected(db_session):
    """Test that dependency cycles are rejected with their path"""
    b = create_field(db_session, field_label="B")
    a = create_field(db_session, field_label="A", dependent_on_field_id=str(b.id))

    with pytest.raises(CyclicDependency) as exc:
        _update(db_session, b, dependent_on_field_id=str(a.id))
    assert exc.value.details["path"] == [str(b.id), str(a.id), str(b.id)]

    with pytest.raises(CyclicDependency):
        _update(db_session, a, dependent_on_field_id=str(a.id))


def test_update_checks_duplicates_before_cycles(db_session):
    """Test that a duplicate name is reported before a cycle"""
    b = create_field(db_session, field_name="Field_1", field_label="B")
    a = create_field(db_session, field_label="A", dependent_on_field_id=str(b.id))
    with pytest.raises(DuplicateFieldName):
        _update(db_session, b, field_name=a.field_name, dependent_on_field_id=str(a.id))


def test_hiding_a_dependency_target_is_rejected(db_session):
    """Test that a dependency target cannot be hidden"""
    target = create_field(db_session, field_label="Status", field_type="select", options=["Open"])
    create_field(db_session, field_label="Reason", dependent_on_field_id=str(target.id))
    with pytest.raises(InvalidReference):
        _update(db_session, target, is_hidden=True)


def test_composite_type_changes(db_session):
    """Test that type changes to and from composite clear stale references"""
    group, street, city, _ = address_group(db_session, "job_seeker")

    with pytest.raises(InvalidReference, match="sub-field"):
        _update(db_session, street, field_type="composite")

    group = _update(db_session, group, field_type="text")
    assert group.sub_field_ids is None

    plain = create_field(db_session, field_label="Plain", dependent_on_field_id=str(city.id))
    plain = _update(db_session, plain, field_type="composite")
    assert plain.dependent_on_field_id is None
    assert plain.sub_field_ids == []


def test_update_audits_only_changed_attributes(db_session):
    """Test that updates audit only the attributes that changed"""
    f = create_field(db_session, field_label="Title")
    _update(db_session, f, field_label="Title", actor="a@local.test")
    assert [e.action for e in _events(db_session, f)] == ["CREATE"]

    _update(db_session, f, field_label="Job Title", placeholder="e.g. Engineer", actor="a@local.test")
    update = [e for e in _events(db_session, f) if e.action == "UPDATE"]
    assert len(update) == 1
    assert sorted(update[0].changed_attributes) == ["field_label", "placeholder"]
    assert update[0].before_values == {"field_label": "Title", "placeholder": None}
    assert update[0].after_values["field_label"] == "Job Title"
    assert f.updated_by == "a@local.test"


def test_update_unknown_field(db_session):
    """Test updating a field that does not exist"""
    with pytest.raises(NotFound):
        service.update_field(db_session, uuid.uuid4(), FieldDefinitionUpdate(field_label="x"))


# ---------- delete ----------

def test_delete_clears_references(db_session):
    """Test that deleting a field clears references held by other fields"""
    group, street, city, zip_code = address_group(db_session, "organization")
    dependent = create_field(db_session, "organization", field_label="Suite", dependent_on_field_id=str(city.id))

    service.delete_field(db_session, city.id, actor="admin@local.test")
    db_session.commit()

    db_session.refresh(group)
    db_session.refresh(dependent)
    assert group.sub_field_ids == [str(street.id), str(zip_code.id)]
    assert dependent.dependent_on_field_id is None
    assert dependent in service.list_fields(db_session, "organization")

    assert "UPDATE" in [e.action for e in _events(db_session, group)]
    assert "UPDATE" in [e.action for e in _events(db_session, dependent)]
    deleted = [e for e in _events(db_session, city) if e.action == "DELETE"]
    assert len(deleted) == 1
    assert deleted[0].before_values["field_label"] == "City"

    with pytest.raises(NotFound):
        service.get_field(db_session, city.id)


# ---------- reorder ----------

def test_reorder_is_idempotent(db_session):
    """Test that reordering rewrites sort orders and is idempotent"""
    a = create_field(db_session, field_label="A")
    b = create_field(db_session, field_label="B")
    c = create_field(db_session, field_label="C")

    result = service.reorder_fields(db_session, "job_seeker", [str(c.id), str(a.id)])
    db_session.commit()
    assert [f.field_label for f in result] == ["C", "A", "B"]
    assert [f.sort_order for f in result] == [10, 20, 30]

    before = db_session.query(AuditEvent).count()
    again = service.reorder_fields(db_session, "job_seeker", [str(f.id) for f in result])
    db_session.commit()
    assert [f.sort_order for f in again] == [10, 20, 30]
    assert db_session.query(AuditEvent).count() == before


def test_reorder_rejects_foreign_ids(db_session):
    """Test that reordering rejects ids of another entity type"""
    create_field(db_session, field_label="A")
    other = create_field(db_session, "job", field_label="B")
    with pytest.raises(InvalidReference):
        service.reorder_fields(db_session, "job_seeker", [str(other.id)])


# ---------- record values ----------

def test_save_values_validates_and_stores_label_keyed(db_session):
    """Test that saved values are validated and stored label-keyed"""
    name = create_field(db_session, field_label="Full Name", is_required=True)
    start = create_field(db_session, field_label="Start Date", field_type="date")

    res = service.save_values(db_session, "job_seeker", "42", {start.field_name: "02/29/2024"})
    assert not res.is_valid
    assert res.reason == "Full Name is required"
    assert service.load_values(db_session, "job_seeker", "42").get(name.field_name) == ""

    res = service.save_values(db_session, "job_seeker", "42", {name.field_name: "Jane", start.field_name: "02/29/2024"})
    db_session.commit()
    assert res.is_valid

    stored = service.store.load_entity_values(db_session, "job_seeker", "42")
    assert stored == {"Full Name": "Jane", "Start Date": "2024-02-29"}
    assert service.load_values(db_session, "job_seeker", "42")[start.field_name] == "2024-02-29"


def test_save_values_keeps_hidden_and_unowned_keys(db_session):
    """Test that saving keeps hidden field values and keys no field owns"""
    name = create_field(db_session, field_label="Full Name", is_required=True)
    note = create_field(db_session, field_label="Internal Note")
    service.store.save_entity_values(
        db_session, "job_seeker", "7", {"Full Name": "A", "Internal Note": "keep", "Legacy Col": "x"}
    )
    db_session.commit()
    _update(db_session, note, is_hidden=True)

    res = service.save_values(db_session, "job_seeker", "7", {name.field_name: "B"})
    db_session.commit()
    assert res.is_valid

    stored = service.store.load_entity_values(db_session, "job_seeker", "7")
    assert stored == {"Full Name": "B", "Internal Note": "keep", "Legacy Col": "x"}

    _update(db_session, note, is_hidden=False)
    assert service.load_values(db_session, "job_seeker", "7")[note.field_name] == "keep"
