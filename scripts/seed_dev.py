# seed_dev.py
from sqlalchemy.orm import Session

from fieldschema.core.logging import get_logger
from fieldschema.db.session import SessionLocal
from fieldschema.engine import resolver
from fieldschema.models.field_definition import FieldDefinition
from fieldschema.schemas.fields import FieldDefinitionCreate, FieldDefinitionUpdate
from fieldschema.services import fields as service

SEED_ACTOR = "seed@local.test"

logger = get_logger(__name__)


# ---------- helpers ----------

def get_or_create_field(db: Session, entity_type: str, *, label: str, field_type: str = "text", **attrs) -> FieldDefinition:
    """Fields are matched by label; an existing one is brought to the desired state through the service."""
    existing = next(
        (f for f in service.list_fields(db, entity_type) if f.field_label == label),
        None,
    )
    if existing is None:
        f = service.create_field(
            db,
            entity_type,
            FieldDefinitionCreate(field_label=label, field_type=field_type, **attrs),
            actor=SEED_ACTOR,
        )
        db.commit()
        db.refresh(f)
        return f

    f = service.update_field(
        db,
        existing.id,
        FieldDefinitionUpdate(field_type=field_type, **attrs),
        actor=SEED_ACTOR,
    )
    db.commit()
    db.refresh(f)
    return f


def seed_organization(db: Session) -> list[FieldDefinition]:
    name = get_or_create_field(db, "organization", label="Organization Name", is_required=True)
    get_or_create_field(db, "organization", label="Main Phone", field_type="phone")
    get_or_create_field(db, "organization", label="Website", field_type="url")
    get_or_create_field(db, "organization", label="Number of Employees", field_type="number")

    street = get_or_create_field(db, "organization", label="Street", is_required=True)
    city = get_or_create_field(db, "organization", label="City", is_required=True)
    state = get_or_create_field(
        db, "organization", label="State", field_type="select", options=["", "CA", "NY", "TX"]
    )
    zip_code = get_or_create_field(db, "organization", label="Zip Code")
    get_or_create_field(
        db,
        "organization",
        label="Address",
        field_type="composite",
        is_required=True,
        sub_field_ids=[str(street.id), str(city.id), str(state.id), str(zip_code.id)],
    )

    get_or_create_field(
        db, "organization", label="Owner", field_type="lookup", lookup_type="owner", role="owner"
    )

    status = get_or_create_field(
        db, "organization", label="Status", field_type="select", options=["Active", "Prospect", "Closed"]
    )
    get_or_create_field(
        db,
        "organization",
        label="Close Reason",
        field_type="textarea",
        dependent_on_field_id=str(status.id),
    )
    get_or_create_field(db, "organization", label="Date Added", field_type="date", is_read_only=True)

    return service.list_fields(db, "organization")


def seed_job_seeker(db: Session) -> list[FieldDefinition]:
    get_or_create_field(db, "job_seeker", label="First Name", is_required=True)
    get_or_create_field(db, "job_seeker", label="Last Name", is_required=True)
    get_or_create_field(db, "job_seeker", label="Email", field_type="email", is_required=True)
    get_or_create_field(db, "job_seeker", label="Mobile Phone", field_type="phone")
    get_or_create_field(db, "job_seeker", label="LinkedIn URL", field_type="url")
    get_or_create_field(db, "job_seeker", label="Available From", field_type="date")
    get_or_create_field(
        db, "job_seeker", label="Skills", field_type="multiselect", options=["Python", "SQL", "Sales"]
    )
    get_or_create_field(db, "job_seeker", label="Internal Notes", field_type="textarea", is_hidden=True)
    return service.list_fields(db, "job_seeker")


def main():
    db = SessionLocal()
    try:
        organization = seed_organization(db)
        job_seeker = seed_job_seeker(db)

        print("\n=== DEV SEED COMPLETE ===")
        for entity_type, fields in (("organization", organization), ("job_seeker", job_seeker)):
            print(f"\n{entity_type}:")
            for item in resolver.resolve_layout(fields, include_hidden=True):
                f = item.field
                flags = [n for n in ("required", "hidden", "read_only") if getattr(f, f"is_{n}")]
                print(f"  {f.sort_order:>4}  {f.field_name:<10} {f.field_label} ({f.field_type}) {' '.join(flags)}")
                for sub in getattr(item, "sub_fields", []):
                    print(f"        - {sub.field_name:<10} {sub.field_label}")

        owner = resolver.find_by_role(organization, "owner")
        print(f"\nOwner field: {owner.field_name if owner else '-'}")

        print("\nNext API steps:")
        print("  GET  /fields/organization/layout")
        print("  POST /fields/organization/validate  {\"values\": {...}}")
        print("  GET  /audit?entity_type=organization")

        logger.info("Dev seed complete", organization=len(organization), job_seeker=len(job_seeker))
    finally:
        db.close()


if __name__ == "__main__":
    main()
