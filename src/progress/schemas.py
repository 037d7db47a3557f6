"""Pydantic schemas for enrollments and progress tracking."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.courses.schemas import CourseResponse, LessonResponse, ModuleResponse


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Self-enrollment request."""

    course_id: UUID


class AssignEnrollmentRequest(BaseModel):
    """Admin assigns a course to a student."""

    user_id: UUID
    course_id: UUID


class UpdateEnrollmentRequest(BaseModel):
    """Enrollment update (owner or admin)."""

    progress: int | None = Field(None, ge=0, le=100)
    completed_at: datetime | None = None


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: datetime
    completed_at: datetime | None = None
    progress: int = 0


class EnrollmentWithCourseResponse(EnrollmentResponse):
    """Enrollment with its course embedded."""

    course: CourseResponse | None = None


# ==============================================================================
# Lesson Progress Schemas
# ==============================================================================


class MarkLessonCompleteRequest(BaseModel):
    """Mark a lesson complete.

    `module_id` and `course_id` are optional; when sent they must match the
    lesson's position in the hierarchy.
    """

    lesson_id: UUID
    module_id: UUID | None = None
    course_id: UUID | None = None


class LessonProgressResponse(BaseModel):
    """Completion status of a lesson for the caller."""

    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    user_id: UUID
    completed: bool = False
    completed_at: datetime | None = None


# ==============================================================================
# Course Progress Schemas
# ==============================================================================


class LessonWithProgress(LessonResponse):
    completed: bool = False


class ModuleWithProgress(ModuleResponse):
    lessons: list[LessonWithProgress] = Field(default_factory=list)


class CourseProgressResponse(BaseModel):
    """A student's view of a course: modules, lessons and what is done."""

    course_id: UUID
    progress: int = 0
    completed_at: datetime | None = None
    modules: list[ModuleWithProgress] = Field(default_factory=list)


class ModuleProgressSummary(BaseModel):
    module_id: UUID
    title: str
    completed_lessons: int
    total_lessons: int
    progress: int


class StudentCourseProgress(BaseModel):
    """Per-student line of the admin course report."""

    user_id: UUID
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    progress: int
    completed_at: datetime | None = None
    modules: list[ModuleProgressSummary] = Field(default_factory=list)


class AdminCourseProgressResponse(BaseModel):
    course_id: UUID
    title: str
    students: list[StudentCourseProgress] = Field(default_factory=list)


class RecalculateProgressRequest(BaseModel):
    """Recalculation scope: user+course, course, user, or the whole tenant."""

    user_id: UUID | None = None
    course_id: UUID | None = None


class ProgressUpdate(BaseModel):
    user_id: UUID
    course_id: UUID
    old_progress: int
    new_progress: int


class RecalculateProgressResponse(BaseModel):
    updated_count: int
    updates: list[ProgressUpdate]
    message: str
