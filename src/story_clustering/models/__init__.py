from story_clustering.models.base import Base
from story_clustering.models.grouping_record import GroupingRecord

__all__ = [
    "Base",
    "GroupingRecord",
]
