import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from fieldschema.db.base import Base
from fieldschema.engine.types import EntityType, FieldType

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _in_list(column: str, enum_cls) -> str:
    values = ",".join(f"'{m.value}'" for m in enum_cls)
    return f"{column} IN ({values})"


class FieldDefinition(Base):
    __tablename__ = "field_definitions"
    __table_args__ = (
        UniqueConstraint("entity_type", "field_name", name="uq_field_definitions_entity_name"),
        CheckConstraint(_in_list("entity_type", EntityType), name="ck_field_definitions_entity_type"),
        CheckConstraint(_in_list("field_type", FieldType), name="ck_field_definitions_type"),
        Index("ix_field_definitions_entity_sort", "entity_type", "sort_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    entity_type: Mapped[str] = mapped_column(String(40), nullable=False)

    # machine key, Field_<n> unless explicitly renamed
    field_name: Mapped[str] = mapped_column(String(120), nullable=False)
    field_label: Mapped[str] = mapped_column(String(200), nullable=False)
    field_type: Mapped[str] = mapped_column(String(40), nullable=False)

    is_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_read_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # select/radio/multiselect/multicheckbox only; blank entries are real options
    options: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    placeholder: Mapped[str | None] = mapped_column(String(500), nullable=True)
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    # lookup/multiselect_lookup only
    lookup_type: Mapped[str | None] = mapped_column(String(40), nullable=True)

    # composite only: ordered list of field ids (as strings)
    sub_field_ids: Mapped[list | None] = mapped_column(JSONType, nullable=True)

    dependent_on_field_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("field_definitions.id", ondelete="SET NULL"),
        nullable=True,
    )

    # purpose tag, e.g. "owner", for callers that need a specific field
    role: Mapped[str | None] = mapped_column(String(60), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
    created_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(320), nullable=True)
