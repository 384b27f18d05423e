"""
Tests for the schema change history endpoint.
"""

from fastapi.testclient import TestClient
from fieldschema.main import app

from tests.helpers import create_field

ADMIN = {"X-User-Email": "admin@local.test"}


def test_list_audit_events(db_session):
    """Test that every mutation shows up in the history"""
    client = TestClient(app)
    r = client.post("/fields/lead", json={"field_label": "Source", "field_type": "text"}, headers=ADMIN)
    field_id = r.json()["id"]
    client.patch(f"/fields/definitions/{field_id}", json={"field_label": "Lead Source"}, headers=ADMIN)

    response = client.get("/audit")
    assert response.status_code == 200
    events = response.json()
    assert {e["action"] for e in events} == {"CREATE", "UPDATE"}
    update = next(e for e in events if e["action"] == "UPDATE")
    assert update["field_id"] == field_id
    assert update["actor"] == "admin@local.test"
    assert update["changed_attributes"] == ["field_label"]
    assert update["before_values"] == {"field_label": "Source"}
    assert update["after_values"] == {"field_label": "Lead Source"}
    assert update["timestamp"]


def test_list_audit_events_filtered(db_session):
    """Test filtering history by entity type and field"""
    lead = create_field(db_session, "lead", field_label="Source")
    create_field(db_session, "task", field_label="Priority")

    client = TestClient(app)
    events = client.get("/audit", params={"entity_type": "leads"}).json()
    assert [e["field_id"] for e in events] == [str(lead.id)]

    events = client.get("/audit", params={"field_id": str(lead.id)}).json()
    assert len(events) == 1

    assert client.get("/audit", params={"field_id": "nope"}).json() == []
    assert client.get("/audit", params={"entity_type": "planets"}).status_code == 422
