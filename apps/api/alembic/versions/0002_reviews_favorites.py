"""reviews and favorites

Revision ID: 0002_reviews_favorites
Revises: 0001_rentloop_core
Create Date: 2026-10-18 15:00:00
"""

from typing import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0002_reviews_favorites"
down_revision: str | None = "0001_rentloop_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "reviews",
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(length=500), nullable=False),
        sa.Column("helpful", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.ForeignKeyConstraint(["tenant_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("property_id", "tenant_id", name="uq_reviews_property_tenant"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
    )
    op.create_index("ix_reviews_property_created_at", "reviews", ["property_id", "created_at"], unique=False)
    op.create_index("ix_reviews_tenant_id", "reviews", ["tenant_id"], unique=False)

    op.create_table(
        "favorites",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("property_id", sa.Uuid(), nullable=False),
        sa.Column("id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["property_id"], ["properties.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "property_id", name="uq_favorites_user_property"),
    )
    op.create_index("ix_favorites_user_created_at", "favorites", ["user_id", "created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_favorites_user_created_at", table_name="favorites")
    op.drop_table("favorites")

    op.drop_index("ix_reviews_tenant_id", table_name="reviews")
    op.drop_index("ix_reviews_property_created_at", table_name="reviews")
    op.drop_table("reviews")
