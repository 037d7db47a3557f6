"""Activity logging: append-only user action timelines."""

from .models import ACTIVITY_TABLES_CQL, ActivityLog, ActivityType
from .writer import ActivityWriter


__all__ = [
    "ACTIVITY_TABLES_CQL",
    "ActivityLog",
    "ActivityType",
    "ActivityWriter",
]
