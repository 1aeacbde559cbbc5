"""create shared exercise catalog

Revision ID: 20251115_0101
Create Date: 2025-11-15 01:00:00
"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20251115_0101"

_JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade(op) -> None:
    op.create_table(
        "exercises",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("muscle_groups", _JSON, nullable=True),
        sa.Column("equipment", sa.String(100), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_exercises_name"),
    )


def downgrade(op) -> None:
    op.drop_table("exercises")
