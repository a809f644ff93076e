"""Unique start per author for temporal grouping records.

Revision ID: 002_unique_time_window
Revises: 001_grouping_records
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "002_unique_time_window"
down_revision = "001_grouping_records"
branch_labels = None
depends_on = None

TIME_ONLY = sa.text("grouping_method = 'time'")


def upgrade() -> None:
    op.create_index(
        "uq_grouping_records_time_window",
        "grouping_records",
        ["author_id", "source_mode", "time_range_start"],
        unique=True,
        postgresql_where=TIME_ONLY,
        sqlite_where=TIME_ONLY,
    )


def downgrade() -> None:
    op.drop_index("uq_grouping_records_time_window", table_name="grouping_records")
