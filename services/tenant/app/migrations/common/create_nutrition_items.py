"""create shared nutrition catalog

Revision ID: 20251115_0102
Create Date: 2025-11-15 01:10:00
"""

import sqlalchemy as sa

revision = "20251115_0102"


def upgrade(op) -> None:
    op.create_table(
        "nutrition_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("serving_size", sa.String(50), nullable=True),
        sa.Column("calories", sa.Numeric(8, 2), nullable=True),
        sa.Column("protein_g", sa.Numeric(8, 2), nullable=True),
        sa.Column("carbs_g", sa.Numeric(8, 2), nullable=True),
        sa.Column("fat_g", sa.Numeric(8, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_nutrition_items_name", "nutrition_items", ["name"])


def downgrade(op) -> None:
    op.drop_index("ix_nutrition_items_name", table_name="nutrition_items")
    op.drop_table("nutrition_items")
