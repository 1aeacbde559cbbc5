"""create tenant settings

Revision ID: 20251115_0202
Create Date: 2025-11-15 02:10:00
"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20251115_0202"

_JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade(op) -> None:
    op.create_table(
        "settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", _JSON, nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key", name="uq_settings_key"),
    )


def downgrade(op) -> None:
    op.drop_table("settings")
