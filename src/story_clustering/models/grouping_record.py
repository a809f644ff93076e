"""Grouping record model -- the persisted unit materialized from a cluster or time window."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from story_clustering.models.base import Base

GROUPING_METHODS = ("time", "cluster", "manual")


class GroupingRecord(Base):
    """A journal entry grouping activities for one author and source mode.

    Cluster records are keyed by ``cluster_ref`` (the derived display
    name); temporal records by their ``time_range_start``/``time_range_end``
    window.  ``narrative_pending`` is set on creation and reset whenever
    membership changes; an external narrative generator clears it and
    stamps ``generated_at``.
    """

    __tablename__ = "grouping_records"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[str] = mapped_column(sa.String, index=True)
    source_mode: Mapped[str] = mapped_column(sa.String, default="production")
    grouping_method: Mapped[str] = mapped_column(sa.String)

    title: Mapped[str] = mapped_column(sa.String)
    description: Mapped[str | None] = mapped_column(sa.Text, nullable=True)
    # JSON for SQLite compatibility
    activity_ids: Mapped[list] = mapped_column(sa.JSON, default=list)
    tags: Mapped[list | None] = mapped_column(sa.JSON, nullable=True)

    # Dedup keys
    cluster_ref: Mapped[str | None] = mapped_column(sa.String, nullable=True)
    time_range_start: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)
    time_range_end: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)

    # Narrative state
    narrative_pending: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    generated_at: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP"))
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP"), onupdate=sa.func.now()
    )

    __table_args__ = (
        sa.UniqueConstraint(
            "author_id", "source_mode", "grouping_method", "cluster_ref",
            name="uq_grouping_records_cluster_ref",
        ),
        sa.CheckConstraint(
            "grouping_method IN ('time', 'cluster', 'manual')", name="valid_grouping_method"
        ),
        sa.Index("ix_grouping_records_author_mode", "author_id", "source_mode", "grouping_method"),
        # Backstop for concurrent syncs creating the same time window.
        sa.Index(
            "uq_grouping_records_time_window",
            "author_id", "source_mode", "time_range_start",
            unique=True,
            postgresql_where=sa.text("grouping_method = 'time'"),
            sqlite_where=sa.text("grouping_method = 'time'"),
        ),
    )
