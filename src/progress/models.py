"""Database models for enrollments and lesson progress.

Cassandra table definitions for:
- enrollments: One row per (user, course), partitioned by user.
  Indexed by course, tenant and id for admin views.
- lesson_progress: One row per (user, lesson), partitioned by user.
  Indexed by course for course-wide reports.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.core.datetime_utils import ensure_utc_aware, utcnow


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    user_id UUID,
    course_id UUID,
    id UUID,
    tenant_id UUID,
    enrolled_at TIMESTAMP,
    completed_at TIMESTAMP,
    progress INT,
    PRIMARY KEY ((user_id), course_id)
)
"""

ENROLLMENTS_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_course_id_idx
ON {keyspace}.enrollments (course_id)
"""

ENROLLMENTS_TENANT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_tenant_id_idx
ON {keyspace}.enrollments (tenant_id)
"""

ENROLLMENTS_ID_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS enrollments_id_idx ON {keyspace}.enrollments (id)
"""

LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    user_id UUID,
    lesson_id UUID,
    module_id UUID,
    course_id UUID,
    tenant_id UUID,
    completed BOOLEAN,
    completed_at TIMESTAMP,
    PRIMARY KEY ((user_id), lesson_id)
)
"""

LESSON_PROGRESS_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS lesson_progress_course_id_idx
ON {keyspace}.lesson_progress (course_id)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_COURSE_INDEX_CQL,
    ENROLLMENTS_TENANT_INDEX_CQL,
    ENROLLMENTS_ID_INDEX_CQL,
    LESSON_PROGRESS_TABLE_CQL,
    LESSON_PROGRESS_COURSE_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """A user's enrollment in a course.

    Attributes:
        progress: 0..100, recalculated from completed lessons
        completed_at: Set when progress reaches 100
    """

    def __init__(
        self,
        tenant_id: UUID,
        user_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        enrolled_at: datetime | None = None,
        completed_at: datetime | None = None,
        progress: int = 0,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.course_id = course_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or utcnow()
        self.completed_at = ensure_utc_aware(completed_at)
        self.progress = progress

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            course_id=row.course_id,
            enrolled_at=row.enrolled_at,
            completed_at=row.completed_at,
            progress=row.progress or 0,
        )

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def __repr__(self) -> str:
        return f"<Enrollment user={self.user_id} course={self.course_id} {self.progress}%>"


class LessonProgress:
    """Completion record of a lesson for a user."""

    def __init__(
        self,
        tenant_id: UUID,
        user_id: UUID,
        lesson_id: UUID,
        module_id: UUID,
        course_id: UUID,
        completed: bool = True,
        completed_at: datetime | None = None,
    ):
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.lesson_id = lesson_id
        self.module_id = module_id
        self.course_id = course_id
        self.completed = completed
        self.completed_at = ensure_utc_aware(completed_at) or (
            utcnow() if completed else None
        )

    @classmethod
    def from_row(cls, row: Any) -> "LessonProgress":
        """Create LessonProgress instance from Cassandra row."""
        return cls(
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            lesson_id=row.lesson_id,
            module_id=row.module_id,
            course_id=row.course_id,
            completed=bool(row.completed),
            completed_at=row.completed_at,
        )

    def __repr__(self) -> str:
        return f"<LessonProgress user={self.user_id} lesson={self.lesson_id}>"
