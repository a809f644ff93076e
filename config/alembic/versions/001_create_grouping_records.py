"""Create grouping_records table.

Revision ID: 001_grouping_records
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "001_grouping_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "grouping_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("author_id", sa.String(), nullable=False),
        sa.Column("source_mode", sa.String(), nullable=False),
        sa.Column("grouping_method", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("activity_ids", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("cluster_ref", sa.String(), nullable=True),
        sa.Column("time_range_start", sa.DateTime(), nullable=True),
        sa.Column("time_range_end", sa.DateTime(), nullable=True),
        sa.Column("narrative_pending", sa.Boolean(), nullable=False),
        sa.Column("generated_at", sa.DateTime(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "author_id",
            "source_mode",
            "grouping_method",
            "cluster_ref",
            name="uq_grouping_records_cluster_ref",
        ),
        sa.CheckConstraint(
            "grouping_method IN ('time', 'cluster', 'manual')",
            name="valid_grouping_method",
        ),
    )
    op.create_index("ix_grouping_records_author_id", "grouping_records", ["author_id"])
    op.create_index(
        "ix_grouping_records_author_mode",
        "grouping_records",
        ["author_id", "source_mode", "grouping_method"],
    )


def downgrade() -> None:
    op.drop_index("ix_grouping_records_author_mode", table_name="grouping_records")
    op.drop_index("ix_grouping_records_author_id", table_name="grouping_records")
    op.drop_table("grouping_records")
