"""Database models for exams.

Cassandra table definitions for:
- exams: Free-text exams attached to a course, indexed by tenant and course
- exam_questions: Ordered prompts of an exam, indexed by exam
- exam_attempts: A student's answers to an exam, reviewed by an admin.
  Indexed by user, exam and tenant.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.core.datetime_utils import ensure_utc_aware, utcnow


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

EXAMS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.exams (
    id UUID PRIMARY KEY,
    tenant_id UUID,
    course_id UUID,
    title TEXT,
    description TEXT,
    accepting_responses BOOLEAN,
    created_by UUID,
    created_at TIMESTAMP
)
"""

EXAMS_TENANT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS exams_tenant_id_idx ON {keyspace}.exams (tenant_id)
"""

EXAMS_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS exams_course_id_idx ON {keyspace}.exams (course_id)
"""

QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.exam_questions (
    id UUID PRIMARY KEY,
    exam_id UUID,
    tenant_id UUID,
    text TEXT,
    position INT,
    created_at TIMESTAMP
)
"""

QUESTIONS_EXAM_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS exam_questions_exam_id_idx
ON {keyspace}.exam_questions (exam_id)
"""

ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.exam_attempts (
    id UUID PRIMARY KEY,
    tenant_id UUID,
    user_id UUID,
    exam_id UUID,
    started_at TIMESTAMP,
    completed_at TIMESTAMP,
    answers MAP<TEXT, TEXT>,
    feedback TEXT,
    reviewed_at TIMESTAMP
)
"""

ATTEMPTS_USER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS exam_attempts_user_id_idx
ON {keyspace}.exam_attempts (user_id)
"""

ATTEMPTS_EXAM_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS exam_attempts_exam_id_idx
ON {keyspace}.exam_attempts (exam_id)
"""

ATTEMPTS_TENANT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS exam_attempts_tenant_id_idx
ON {keyspace}.exam_attempts (tenant_id)
"""

EXAMS_TABLES_CQL = [
    EXAMS_TABLE_CQL,
    EXAMS_TENANT_INDEX_CQL,
    EXAMS_COURSE_INDEX_CQL,
    QUESTIONS_TABLE_CQL,
    QUESTIONS_EXAM_INDEX_CQL,
    ATTEMPTS_TABLE_CQL,
    ATTEMPTS_USER_INDEX_CQL,
    ATTEMPTS_EXAM_INDEX_CQL,
    ATTEMPTS_TENANT_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Exam:
    """An exam of free-text questions attached to a course."""

    def __init__(
        self,
        tenant_id: UUID,
        course_id: UUID,
        title: str,
        description: str | None = None,
        accepting_responses: bool = True,
        created_by: UUID | None = None,
        id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.course_id = course_id
        self.title = title.strip()
        self.description = description
        self.accepting_responses = accepting_responses
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Exam":
        """Create Exam instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            course_id=row.course_id,
            title=row.title,
            description=row.description,
            accepting_responses=(
                True if row.accepting_responses is None else row.accepting_responses
            ),
            created_by=row.created_by,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Exam {self.title}>"


class Question:
    """A free-text prompt of an exam."""

    def __init__(
        self,
        exam_id: UUID,
        tenant_id: UUID,
        text: str,
        position: int = 0,
        id: UUID | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.exam_id = exam_id
        self.tenant_id = tenant_id
        self.text = text
        self.position = position
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Question":
        """Create Question instance from Cassandra row."""
        return cls(
            id=row.id,
            exam_id=row.exam_id,
            tenant_id=row.tenant_id,
            text=row.text,
            position=row.position or 0,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Question {self.position} of exam={self.exam_id}>"


class ExamAttempt:
    """A student's answers to an exam.

    Attributes:
        answers: question id (as text) -> free-text answer
        completed_at: Set when the student submits
        feedback, reviewed_at: Set when an admin grades the attempt
    """

    def __init__(
        self,
        tenant_id: UUID,
        user_id: UUID,
        exam_id: UUID,
        id: UUID | None = None,
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        answers: dict[str, str] | None = None,
        feedback: str | None = None,
        reviewed_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.exam_id = exam_id
        self.started_at = ensure_utc_aware(started_at) or utcnow()
        self.completed_at = ensure_utc_aware(completed_at)
        self.answers = dict(answers or {})
        self.feedback = feedback
        self.reviewed_at = ensure_utc_aware(reviewed_at)

    @classmethod
    def from_row(cls, row: Any) -> "ExamAttempt":
        """Create ExamAttempt instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            exam_id=row.exam_id,
            started_at=row.started_at,
            completed_at=row.completed_at,
            answers=row.answers,
            feedback=row.feedback,
            reviewed_at=row.reviewed_at,
        )

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def is_reviewed(self) -> bool:
        return self.reviewed_at is not None

    def __repr__(self) -> str:
        return f"<ExamAttempt user={self.user_id} exam={self.exam_id}>"
