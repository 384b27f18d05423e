import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from fieldschema.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class AuditEvent(Base):
    __tablename__ = "field_audit_events"
    __table_args__ = (
        Index("ix_field_audit_events_field", "field_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    # email / username from the request; no FK, the user directory lives elsewhere
    actor: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(20), nullable=False)  # CREATE, UPDATE, DELETE
    entity_type: Mapped[str] = mapped_column(String(40), nullable=False)
    field_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    changed_attributes: Mapped[list | None] = mapped_column(JSONType, nullable=True)
    before_values: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    after_values: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=datetime.utcnow
    )
