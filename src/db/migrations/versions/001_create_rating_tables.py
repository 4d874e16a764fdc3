"""Create visit_ratings and church_star_ratings tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "visits",
        sa.Column("is_rated", sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        "visit_ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "visit_id",
            sa.Integer(),
            sa.ForeignKey("visits.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("missionary_id", sa.String(), nullable=True),
        sa.Column("mission_openness_rating", sa.Integer(), nullable=False),
        sa.Column("hospitality_rating", sa.Integer(), nullable=False),
        sa.Column("missionary_support_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("offerings_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("church_members", sa.Integer(), nullable=False),
        sa.Column("attendees_count", sa.Integer(), nullable=False),
        sa.Column("financial_score", sa.Numeric(3, 2), nullable=False),
        sa.Column("calculated_star_rating", sa.Integer(), nullable=False),
        sa.Column("visit_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.CheckConstraint(
            "mission_openness_rating >= 1 AND mission_openness_rating <= 5",
            name="visit_ratings_mission_openness_rating_check",
        ),
        sa.CheckConstraint(
            "hospitality_rating >= 1 AND hospitality_rating <= 5",
            name="visit_ratings_hospitality_rating_check",
        ),
        sa.CheckConstraint(
            "calculated_star_rating >= 1 AND calculated_star_rating <= 5",
            name="visit_ratings_calculated_star_rating_check",
        ),
    )
    op.create_index(
        op.f("ix_visit_ratings_visit_id"), "visit_ratings", ["visit_id"], unique=True
    )
    op.create_index(
        op.f("ix_visit_ratings_missionary_id"), "visit_ratings", ["missionary_id"]
    )

    op.create_table(
        "church_star_ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "church_id",
            sa.Integer(),
            sa.ForeignKey("churches.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("average_stars", sa.Numeric(2, 1), nullable=False, server_default="0"),
        sa.Column("missionary_support_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_visits", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("visits_last_30_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("visits_last_90_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_mission_openness", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column("avg_hospitality", sa.Numeric(3, 2), nullable=False, server_default="0"),
        sa.Column(
            "avg_financial_generosity", sa.Numeric(3, 2), nullable=False, server_default="0"
        ),
        sa.Column(
            "total_offerings_collected", sa.Numeric(12, 2), nullable=False, server_default="0"
        ),
        sa.Column(
            "avg_offerings_per_visit", sa.Numeric(10, 2), nullable=False, server_default="0"
        ),
        sa.Column("last_visit_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_calculated", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "average_stars >= 0 AND average_stars <= 5",
            name="church_star_ratings_average_stars_check",
        ),
    )
    op.create_index(
        op.f("ix_church_star_ratings_church_id"),
        "church_star_ratings",
        ["church_id"],
        unique=True,
    )
    op.create_index(
        op.f("ix_church_star_ratings_average_stars"), "church_star_ratings", ["average_stars"]
    )
    op.create_index(
        op.f("ix_church_star_ratings_last_visit_date"),
        "church_star_ratings",
        ["last_visit_date"],
    )


def downgrade() -> None:
    op.drop_index(
        op.f("ix_church_star_ratings_last_visit_date"), table_name="church_star_ratings"
    )
    op.drop_index(op.f("ix_church_star_ratings_average_stars"), table_name="church_star_ratings")
    op.drop_index(op.f("ix_church_star_ratings_church_id"), table_name="church_star_ratings")
    op.drop_table("church_star_ratings")
    op.drop_index(op.f("ix_visit_ratings_missionary_id"), table_name="visit_ratings")
    op.drop_index(op.f("ix_visit_ratings_visit_id"), table_name="visit_ratings")
    op.drop_table("visit_ratings")
    op.drop_column("visits", "is_rated")
