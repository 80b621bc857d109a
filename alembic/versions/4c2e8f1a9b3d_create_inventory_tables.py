"""Create inventory tables

Revision ID: 4c2e8f1a9b3d
Revises:
Create Date: 2026-01-12 18:04:11.204518

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4c2e8f1a9b3d"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        )
    ]
    if updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.text("now()"),
                nullable=False,
            )
        )
    return columns


def upgrade() -> None:
    op.create_table(
        "ingredients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_ingredients_id"), "ingredients", ["id"], unique=False)
    op.create_index(op.f("ix_ingredients_category"), "ingredients", ["category"], unique=False)

    op.create_table(
        "unrecognized_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("raw_text", sa.Text(), nullable=False),
        sa.Column("context", sa.String(length=50), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "raw_text", name="uq_unrecognized_user_raw_text"),
    )
    op.create_index(op.f("ix_unrecognized_items_id"), "unrecognized_items", ["id"], unique=False)
    op.create_index(
        op.f("ix_unrecognized_items_user_id"), "unrecognized_items", ["user_id"], unique=False
    )

    op.create_table(
        "user_inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=True),
        sa.Column("unrecognized_item_id", sa.Integer(), nullable=True),
        sa.Column("quantity_level", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("is_pantry_staple", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("quantity_level BETWEEN 0 AND 3", name="ck_user_inventory_quantity"),
        sa.CheckConstraint(
            "(ingredient_id IS NULL) <> (unrecognized_item_id IS NULL)",
            name="ck_user_inventory_single_ref",
        ),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredients.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["unrecognized_item_id"], ["unrecognized_items.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_inventory_id"), "user_inventory", ["id"], unique=False)
    op.create_index(op.f("ix_user_inventory_user_id"), "user_inventory", ["user_id"], unique=False)
    # Upserts target these partial indexes
    op.create_index(
        "uq_user_inventory_user_ingredient",
        "user_inventory",
        ["user_id", "ingredient_id"],
        unique=True,
        postgresql_where=sa.text("ingredient_id IS NOT NULL"),
    )
    op.create_index(
        "uq_user_inventory_user_unrecognized",
        "user_inventory",
        ["user_id", "unrecognized_item_id"],
        unique=True,
        postgresql_where=sa.text("unrecognized_item_id IS NOT NULL"),
    )

    op.create_table(
        "llm_usage_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("endpoint", sa.String(length=100), nullable=False),
        *_timestamps(updated=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_llm_usage_log_id"), "llm_usage_log", ["id"], unique=False)
    op.create_index(
        "idx_llm_usage_user_date", "llm_usage_log", ["user_id", "created_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index("idx_llm_usage_user_date", table_name="llm_usage_log")
    op.drop_index(op.f("ix_llm_usage_log_id"), table_name="llm_usage_log")
    op.drop_table("llm_usage_log")

    op.drop_index("uq_user_inventory_user_unrecognized", table_name="user_inventory")
    op.drop_index("uq_user_inventory_user_ingredient", table_name="user_inventory")
    op.drop_index(op.f("ix_user_inventory_user_id"), table_name="user_inventory")
    op.drop_index(op.f("ix_user_inventory_id"), table_name="user_inventory")
    op.drop_table("user_inventory")

    op.drop_index(op.f("ix_unrecognized_items_user_id"), table_name="unrecognized_items")
    op.drop_index(op.f("ix_unrecognized_items_id"), table_name="unrecognized_items")
    op.drop_table("unrecognized_items")

    op.drop_index(op.f("ix_ingredients_category"), table_name="ingredients")
    op.drop_index(op.f("ix_ingredients_id"), table_name="ingredients")
    op.drop_table("ingredients")
