"""Database models for batches.

Cassandra table definitions for:
- batches: A scheduled cohort of a course led by a trainer. Indexed by
  tenant and course.
- batches_by_code: Claims batch codes so they stay unique
- batch_enrollments: One row per (batch, user), indexed by user and id
"""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.core.datetime_utils import ensure_utc_aware, to_date, utcnow


# ==============================================================================
# Enums
# ==============================================================================


class BatchEnrollmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

BATCHES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.batches (
    id UUID PRIMARY KEY,
    tenant_id UUID,
    name TEXT,
    batch_code TEXT,
    course_id UUID,
    trainer_id UUID,
    start_date DATE,
    batch_time TEXT,
    description TEXT,
    max_students INT,
    is_active BOOLEAN,
    created_by UUID,
    created_at TIMESTAMP
)
"""

BATCHES_TENANT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS batches_tenant_id_idx ON {keyspace}.batches (tenant_id)
"""

BATCHES_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS batches_course_id_idx ON {keyspace}.batches (course_id)
"""

BATCHES_BY_CODE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.batches_by_code (
    batch_code TEXT PRIMARY KEY,
    batch_id UUID
)
"""

BATCH_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.batch_enrollments (
    batch_id UUID,
    user_id UUID,
    id UUID,
    tenant_id UUID,
    enrolled_at TIMESTAMP,
    enrolled_by UUID,
    status TEXT,
    PRIMARY KEY ((batch_id), user_id)
)
"""

BATCH_ENROLLMENTS_USER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS batch_enrollments_user_id_idx
ON {keyspace}.batch_enrollments (user_id)
"""

BATCH_ENROLLMENTS_ID_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS batch_enrollments_id_idx
ON {keyspace}.batch_enrollments (id)
"""

BATCHES_TABLES_CQL = [
    BATCHES_TABLE_CQL,
    BATCHES_TENANT_INDEX_CQL,
    BATCHES_COURSE_INDEX_CQL,
    BATCHES_BY_CODE_TABLE_CQL,
    BATCH_ENROLLMENTS_TABLE_CQL,
    BATCH_ENROLLMENTS_USER_INDEX_CQL,
    BATCH_ENROLLMENTS_ID_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Batch:
    """A cohort of students taking a course together."""

    def __init__(
        self,
        tenant_id: UUID,
        name: str,
        batch_code: str,
        course_id: UUID,
        trainer_id: UUID,
        start_date: date | None = None,
        batch_time: str | None = None,
        description: str | None = None,
        max_students: int | None = None,
        is_active: bool = True,
        created_by: UUID | None = None,
        id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.name = name.strip()
        self.batch_code = batch_code
        self.course_id = course_id
        self.trainer_id = trainer_id
        self.start_date = start_date
        self.batch_time = batch_time
        self.description = description
        self.max_students = max_students
        self.is_active = is_active
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Batch":
        """Create Batch instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            name=row.name,
            batch_code=row.batch_code,
            course_id=row.course_id,
            trainer_id=row.trainer_id,
            start_date=to_date(row.start_date),
            batch_time=row.batch_time,
            description=row.description,
            max_students=row.max_students,
            is_active=True if row.is_active is None else row.is_active,
            created_by=row.created_by,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Batch {self.batch_code}>"


class BatchEnrollment:
    """Membership of a user in a batch."""

    def __init__(
        self,
        tenant_id: UUID,
        batch_id: UUID,
        user_id: UUID,
        enrolled_by: UUID | None = None,
        status: str = BatchEnrollmentStatus.ACTIVE.value,
        id: UUID | None = None,
        enrolled_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.batch_id = batch_id
        self.user_id = user_id
        self.enrolled_by = enrolled_by
        self.status = status
        self.enrolled_at = ensure_utc_aware(enrolled_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "BatchEnrollment":
        """Create BatchEnrollment instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            batch_id=row.batch_id,
            user_id=row.user_id,
            enrolled_by=row.enrolled_by,
            status=row.status or BatchEnrollmentStatus.ACTIVE.value,
            enrolled_at=row.enrolled_at,
        )

    @property
    def is_active(self) -> bool:
        return self.status == BatchEnrollmentStatus.ACTIVE.value

    def __repr__(self) -> str:
        return f"<BatchEnrollment batch={self.batch_id} user={self.user_id}>"
