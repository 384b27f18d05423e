import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from fieldschema.db.base import Base


class EntityValues(Base):
    """Custom field values of one record, stored label-keyed as the wider record schema expects."""

    __tablename__ = "entity_custom_values"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", name="uq_entity_custom_values_record"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    entity_type: Mapped[str] = mapped_column(String(40), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)

    custom_fields: Mapped[dict] = mapped_column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=datetime.utcnow)
