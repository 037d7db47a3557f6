"""Database models for course management.

Cassandra table definitions for:
- courses: Main course table, indexed by tenant
- modules: Ordered sections of a course, indexed by course
- lessons: Ordered content of a module, indexed by module

Modules and lessons carry their tenant and course so access checks do not
need to walk the hierarchy.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from src.core.datetime_utils import ensure_utc_aware, utcnow


class Difficulty(str, Enum):
    """Course difficulty level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ContentType(str, Enum):
    """Lesson content type."""

    VIDEO = "video"
    TEXT = "text"
    PDF = "pdf"
    QUIZ = "quiz"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    tenant_id UUID,
    title TEXT,
    description TEXT,
    category TEXT,
    difficulty TEXT,
    duration TEXT,
    module_count INT,
    lesson_count INT,
    thumbnail TEXT,
    instructor_id UUID,
    is_enrollment_required BOOLEAN,
    created_by UUID,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSE_TENANT_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS courses_tenant_id_idx ON {keyspace}.courses (tenant_id)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    tenant_id UUID,
    course_id UUID,
    title TEXT,
    description TEXT,
    position INT,
    created_at TIMESTAMP
)
"""

MODULE_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS modules_course_id_idx ON {keyspace}.modules (course_id)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    tenant_id UUID,
    course_id UUID,
    module_id UUID,
    title TEXT,
    content TEXT,
    content_type TEXT,
    position INT,
    duration INT,
    is_required BOOLEAN,
    quiz_data TEXT,
    created_at TIMESTAMP
)
"""

LESSON_MODULE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS lessons_module_id_idx ON {keyspace}.lessons (module_id)
"""

LESSON_COURSE_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS lessons_course_id_idx ON {keyspace}.lessons (course_id)
"""

# All CQL statements for table setup
COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSE_TENANT_INDEX_CQL,
    MODULE_TABLE_CQL,
    MODULE_COURSE_INDEX_CQL,
    LESSON_TABLE_CQL,
    LESSON_MODULE_INDEX_CQL,
    LESSON_COURSE_INDEX_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity: an ordered collection of modules.

    Attributes:
        id: Unique identifier (UUID)
        tenant_id: Owning tenant
        title, description, category: Catalogue data
        difficulty: beginner, intermediate or advanced
        duration: Free text, e.g. "6 weeks"
        module_count, lesson_count: Kept in step with modules and lessons
        thumbnail: Cover image URL
        instructor_id: Teaching user
        is_enrollment_required: Students must enroll before viewing
        created_by: Admin who created the course
        created_at, updated_at: Timestamps
    """

    def __init__(
        self,
        tenant_id: UUID,
        id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        category: str | None = None,
        difficulty: str = Difficulty.BEGINNER.value,
        duration: str | None = None,
        module_count: int = 0,
        lesson_count: int = 0,
        thumbnail: str | None = None,
        instructor_id: UUID | None = None,
        is_enrollment_required: bool = True,
        created_by: UUID | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.title = title.strip()
        self.description = description
        self.category = category
        self.difficulty = difficulty
        self.duration = duration
        self.module_count = module_count
        self.lesson_count = lesson_count
        self.thumbnail = thumbnail
        self.instructor_id = instructor_id
        self.is_enrollment_required = is_enrollment_required
        self.created_by = created_by
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            title=row.title or "",
            description=row.description,
            category=row.category,
            difficulty=row.difficulty or Difficulty.BEGINNER.value,
            duration=row.duration,
            module_count=row.module_count or 0,
            lesson_count=row.lesson_count or 0,
            thumbnail=row.thumbnail,
            instructor_id=row.instructor_id,
            is_enrollment_required=row.is_enrollment_required
            if row.is_enrollment_required is not None
            else True,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<Course {self.title}>"


class Module:
    """Module entity: an ordered section of a course."""

    def __init__(
        self,
        tenant_id: UUID,
        course_id: UUID,
        id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        position: int = 0,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.course_id = course_id
        self.title = title.strip()
        self.description = description
        self.position = position
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        """Create Module instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            course_id=row.course_id,
            title=row.title or "",
            description=row.description,
            position=row.position or 0,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Module {self.title} pos={self.position}>"


class Lesson:
    """Lesson entity: one piece of content inside a module.

    Attributes:
        content_type: video, text, pdf or quiz
        duration: Minutes
        is_required: Counts towards course completion
        quiz_data: Encoded quiz payload (quiz lessons only)
    """

    def __init__(
        self,
        tenant_id: UUID,
        course_id: UUID,
        module_id: UUID,
        id: UUID | None = None,
        title: str = "",
        content: str | None = None,
        content_type: str = ContentType.TEXT.value,
        position: int = 0,
        duration: int | None = None,
        is_required: bool = True,
        quiz_data: str | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.tenant_id = tenant_id
        self.course_id = course_id
        self.module_id = module_id
        self.title = title.strip()
        self.content = content
        self.content_type = content_type
        self.position = position
        self.duration = duration
        self.is_required = is_required
        self.quiz_data = quiz_data
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        """Create Lesson instance from Cassandra row."""
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            course_id=row.course_id,
            module_id=row.module_id,
            title=row.title or "",
            content=row.content,
            content_type=row.content_type or ContentType.TEXT.value,
            position=row.position or 0,
            duration=row.duration,
            is_required=row.is_required if row.is_required is not None else True,
            quiz_data=row.quiz_data,
            created_at=row.created_at,
        )

    @property
    def is_quiz(self) -> bool:
        return self.content_type == ContentType.QUIZ.value

    def __repr__(self) -> str:
        return f"<Lesson {self.title} ({self.content_type})>"
