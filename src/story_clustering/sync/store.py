"""Grouping record persistence.

Read-before-write lookups by natural key (cluster display name, or an
overlapping time window) decide between create and union-and-update.
Unique indexes on the cluster display name and on the start of a time
window are only a backstop for concurrent syncs of the same user: an
``IntegrityError`` on create is treated as "already exists".  Two
concurrent syncs whose windows overlap without sharing a start can still
both create a temporal record.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from story_clustering.models.grouping_record import GroupingRecord

logger = structlog.get_logger()


def to_naive_utc(value: datetime) -> datetime:
    """Columns are timezone-naive UTC; aware values are converted."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class GroupingRecordStore:
    """Find-by-key and create/update operations for grouping records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_cluster_record(
        self, author_id: str, source_mode: str, cluster_ref: str
    ) -> GroupingRecord | None:
        async with self.session_factory() as session:
            stmt = (
                select(GroupingRecord)
                .where(
                    GroupingRecord.author_id == author_id,
                    GroupingRecord.source_mode == source_mode,
                    GroupingRecord.grouping_method == "cluster",
                    GroupingRecord.cluster_ref == cluster_ref,
                )
                .order_by(GroupingRecord.id)
                .limit(1)
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    async def find_overlapping_temporal_record(
        self, author_id: str, source_mode: str, start: datetime, end: datetime
    ) -> GroupingRecord | None:
        """First temporal record whose ``[start, end]`` overlaps the given window."""
        async with self.session_factory() as session:
            stmt = (
                select(GroupingRecord)
                .where(
                    GroupingRecord.author_id == author_id,
                    GroupingRecord.source_mode == source_mode,
                    GroupingRecord.grouping_method == "time",
                    GroupingRecord.time_range_start <= to_naive_utc(end),
                    GroupingRecord.time_range_end >= to_naive_utc(start),
                )
                .order_by(GroupingRecord.time_range_start, GroupingRecord.id)
                .limit(1)
            )
            return (await session.execute(stmt)).scalar_one_or_none()

    async def count_records(self, author_id: str, source_mode: str) -> int:
        async with self.session_factory() as session:
            stmt = select(func.count(GroupingRecord.id)).where(
                GroupingRecord.author_id == author_id,
                GroupingRecord.source_mode == source_mode,
            )
            return (await session.execute(stmt)).scalar_one()

    async def create_record(
        self,
        *,
        author_id: str,
        source_mode: str,
        grouping_method: str,
        title: str,
        description: str,
        activity_ids: list[str],
        time_range_start: datetime,
        time_range_end: datetime,
        cluster_ref: str | None = None,
        tags: list[str] | None = None,
    ) -> GroupingRecord | None:
        """Insert a new record with its narrative pending.

        Returns:
            The new record, or ``None`` if a concurrent sync created the
            same cluster record first.
        """
        async with self.session_factory() as session:
            record = GroupingRecord(
                author_id=author_id,
                source_mode=source_mode,
                grouping_method=grouping_method,
                title=title,
                description=description,
                activity_ids=list(activity_ids),
                cluster_ref=cluster_ref,
                time_range_start=to_naive_utc(time_range_start),
                time_range_end=to_naive_utc(time_range_end),
                tags=tags,
                narrative_pending=True,
                generated_at=None,
            )
            session.add(record)
            try:
                await session.commit()
            except IntegrityError:
                # Unique index violation = concurrent sync, skip
                await session.rollback()
                logger.debug(
                    "grouping_record_duplicate",
                    author_id=author_id,
                    grouping_method=grouping_method,
                    cluster_ref=cluster_ref,
                )
                return None
            await session.refresh(record)
            return record

    async def update_activity_ids(
        self,
        record_id: int,
        activity_ids: list[str],
        description: str,
        time_range_start: datetime | None = None,
        time_range_end: datetime | None = None,
    ) -> GroupingRecord | None:
        """Replace membership and reset the narrative to pending."""
        values: dict = {
            "activity_ids": list(activity_ids),
            "description": description,
            "narrative_pending": True,
            "generated_at": None,
        }
        if time_range_start is not None:
            values["time_range_start"] = to_naive_utc(time_range_start)
        if time_range_end is not None:
            values["time_range_end"] = to_naive_utc(time_range_end)

        try:
            await self._apply_update(record_id, values)
        except IntegrityError:
            # Widened start collides with another time window; keep the stored range.
            logger.debug("grouping_record_range_kept", record_id=record_id)
            values.pop("time_range_start", None)
            values.pop("time_range_end", None)
            await self._apply_update(record_id, values)
        async with self.session_factory() as session:
            return await session.get(GroupingRecord, record_id)

    async def _apply_update(self, record_id: int, values: dict) -> None:
        async with self.session_factory() as session, session.begin():
            await session.execute(
                update(GroupingRecord).where(GroupingRecord.id == record_id).values(**values)
            )

    async def mark_narrative_generated(self, record_id: int) -> None:
        """Called by the external narrative generator once prose exists."""
        async with self.session_factory() as session, session.begin():
            await session.execute(
                update(GroupingRecord)
                .where(GroupingRecord.id == record_id)
                .values(narrative_pending=False, generated_at=datetime.now(timezone.utc).replace(tzinfo=None))
            )
