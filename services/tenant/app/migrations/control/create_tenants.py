"""create tenants registry

Revision ID: 20251115_0001
Create Date: 2025-11-15 00:00:00
"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20251115_0001"

_JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade(op) -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("domain", sa.String(100), nullable=False),
        sa.Column("schema_name", sa.String(63), nullable=False),
        sa.Column("tenant_type", sa.String(32), nullable=False, server_default="GYM"),
        sa.Column("status", sa.String(32), nullable=False, server_default="TRIAL"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("logo", sa.String(255), nullable=True),
        sa.Column("settings", _JSON, nullable=True),
        sa.Column("contact", _JSON, nullable=True),
        sa.Column("trial_start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_schema_created", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("provisioning_status", sa.String(32), nullable=False, server_default="PENDING"),
        sa.Column("provisioning_error", sa.Text(), nullable=True),
        sa.Column("last_access_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tenants_domain", "tenants", ["domain"], unique=True)
    op.create_index("ix_tenants_schema_name", "tenants", ["schema_name"], unique=True)


def downgrade(op) -> None:
    op.drop_index("ix_tenants_schema_name", table_name="tenants")
    op.drop_index("ix_tenants_domain", table_name="tenants")
    op.drop_table("tenants")
