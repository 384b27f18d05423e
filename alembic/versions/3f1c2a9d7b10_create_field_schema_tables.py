"""create field schema tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-01-12 10:04:17.215309
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "3f1c2a9d7b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

# frozen copies of the enum values at the time of this revision
ENTITY_TYPES = ("organization", "job_seeker", "hiring_manager", "job", "lead", "task", "placement")
FIELD_TYPES = (
    "text", "email", "phone", "number", "percentage", "date", "currency", "datetime",
    "textarea", "select", "multiselect", "multicheckbox", "checkbox", "radio", "url",
    "link", "file", "lookup", "multiselect_lookup", "composite",
)


def _in_list(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN ({','.join(repr(v) for v in values)})"


def upgrade() -> None:
    op.create_table(
        "field_definitions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("field_name", sa.String(length=120), nullable=False),
        sa.Column("field_label", sa.String(length=200), nullable=False),
        sa.Column("field_type", sa.String(length=40), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_read_only", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("options", JSONType, nullable=True),
        sa.Column("placeholder", sa.String(length=500), nullable=True),
        sa.Column("default_value", sa.Text(), nullable=True),
        sa.Column("lookup_type", sa.String(length=40), nullable=True),
        sa.Column("sub_field_ids", JSONType, nullable=True),
        sa.Column(
            "dependent_on_field_id",
            sa.Uuid(),
            sa.ForeignKey("field_definitions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("role", sa.String(length=60), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_by", sa.String(length=320), nullable=True),
        sa.Column("updated_by", sa.String(length=320), nullable=True),
        sa.UniqueConstraint("entity_type", "field_name", name="uq_field_definitions_entity_name"),
        sa.CheckConstraint(_in_list("entity_type", ENTITY_TYPES), name="ck_field_definitions_entity_type"),
        sa.CheckConstraint(_in_list("field_type", FIELD_TYPES), name="ck_field_definitions_type"),
    )
    op.create_index("ix_field_definitions_entity_sort", "field_definitions", ["entity_type", "sort_order"])

    op.create_table(
        "field_audit_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("actor", sa.String(length=320), nullable=True),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("field_id", sa.Uuid(), nullable=False),
        sa.Column("changed_attributes", JSONType, nullable=True),
        sa.Column("before_values", JSONType, nullable=True),
        sa.Column("after_values", JSONType, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_field_audit_events_field", "field_audit_events", ["field_id", "created_at"])

    op.create_table(
        "entity_custom_values",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("custom_fields", JSONType, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("entity_type", "entity_id", name="uq_entity_custom_values_record"),
    )


def downgrade() -> None:
    op.drop_table("entity_custom_values")
    op.drop_index("ix_field_audit_events_field", table_name="field_audit_events")
    op.drop_table("field_audit_events")
    op.drop_index("ix_field_definitions_entity_sort", table_name="field_definitions")
    op.drop_table("field_definitions")
