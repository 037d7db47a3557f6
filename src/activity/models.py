"""Activity log models and CQL table definitions.

Tables:
- activity_logs: Per-tenant timeline (newest first)
- activity_logs_by_user: Per-user timeline (newest first), dual-written

Logs are append-only.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.core.datetime_utils import ensure_utc_aware, utcnow


ACTIVITY_TABLES_CQL = [
    """
    CREATE TABLE IF NOT EXISTS {keyspace}.activity_logs (
        tenant_id UUID,
        timestamp TIMESTAMP,
        id UUID,
        user_id UUID,
        activity_type TEXT,
        resource_id UUID,
        resource_type TEXT,
        PRIMARY KEY ((tenant_id), timestamp, id)
    ) WITH CLUSTERING ORDER BY (timestamp DESC, id ASC)
    """,
    """
    CREATE TABLE IF NOT EXISTS {keyspace}.activity_logs_by_user (
        user_id UUID,
        timestamp TIMESTAMP,
        id UUID,
        tenant_id UUID,
        activity_type TEXT,
        resource_id UUID,
        resource_type TEXT,
        PRIMARY KEY ((user_id), timestamp, id)
    ) WITH CLUSTERING ORDER BY (timestamp DESC, id ASC)
    """,
]


class ActivityType(str, Enum):
    """Activity kinds recorded by the application."""

    COURSE_ENROLL = "course_enroll"
    COURSE_ASSIGN = "course_assign"
    LESSON_COMPLETE = "lesson_complete"
    QUIZ_COMPLETE = "quiz_complete"
    EXAM_START = "exam_start"
    EXAM_COMPLETE = "exam_complete"
    EXAM_GRADED = "exam_graded"
    LOGIN = "login"


class ActivityLog:
    """A single user action."""

    def __init__(
        self,
        tenant_id: UUID,
        user_id: UUID,
        activity_type: str,
        resource_id: UUID | None = None,
        resource_type: str | None = None,
        id: UUID | None = None,
        timestamp: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.activity_type = activity_type
        self.resource_id = resource_id
        self.resource_type = resource_type
        self.timestamp = ensure_utc_aware(timestamp) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "ActivityLog":
        """Create ActivityLog instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            activity_type=row.activity_type,
            resource_id=row.resource_id,
            resource_type=row.resource_type,
            timestamp=row.timestamp,
        )

    def __repr__(self) -> str:
        return f"<ActivityLog {self.activity_type} by {self.user_id}>"
