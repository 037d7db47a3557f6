"""Pydantic schemas for course management.

Request and response models for:
- Courses: CRUD operations
- Modules: CRUD, listed with their ordered lessons
- Lessons: CRUD, including the quiz payload of quiz lessons
"""

from datetime import datetime
from typing import Any, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.courses.models import ContentType, Difficulty
from src.quiz.payload import check_gradable, decode_quiz_payload


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., min_length=3, max_length=200, description="Course title")
    description: str | None = Field(
        None, max_length=5000, description="Course description"
    )
    category: str | None = Field(None, max_length=100)
    difficulty: Difficulty = Field(Difficulty.BEGINNER)
    duration: str | None = Field(None, max_length=50, description='e.g. "6 weeks"')
    thumbnail: str | None = Field(None, max_length=500, description="Cover image URL")
    instructor_id: UUID | None = None
    is_enrollment_required: bool = Field(
        True, description="Students must enroll before viewing"
    )


class UpdateCourseRequest(BaseModel):
    """Course update request."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    category: str | None = Field(None, max_length=100)
    difficulty: Difficulty | None = None
    duration: str | None = Field(None, max_length=50)
    thumbnail: str | None = Field(None, max_length=500)
    instructor_id: UUID | None = None
    is_enrollment_required: bool | None = None


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    title: str
    description: str | None = None
    category: str | None = None
    difficulty: Difficulty
    duration: str | None = None
    module_count: int = 0
    lesson_count: int = 0
    thumbnail: str | None = None
    instructor_id: UUID | None = None
    is_enrollment_required: bool = True
    created_by: UUID | None = None
    created_at: datetime
    updated_at: datetime | None = None


# ==============================================================================
# Lesson Schemas
# ==============================================================================


def _encode_quiz(content_type: ContentType | None, quiz_data: Any) -> str | None:
    """Validate a quiz payload and return its stored form.

    Non-quiz lessons never carry a payload.
    """
    if content_type is not ContentType.QUIZ:
        return None
    return check_gradable(decode_quiz_payload(quiz_data)).encode()


class CreateLessonRequest(BaseModel):
    """Lesson creation request.

    `quiz_data` may be sent as JSON text or as an object. For quiz lessons
    it must hold at least one question, each with exactly one correct option.
    """

    module_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    content: str | None = Field(None, max_length=100_000)
    content_type: ContentType = ContentType.TEXT
    position: int | None = Field(None, ge=0, description="Defaults to the end")
    duration: int | None = Field(None, ge=0, description="Minutes")
    is_required: bool = True
    quiz_data: dict[str, Any] | str | None = None

    @model_validator(mode="after")
    def validate_quiz_data(self) -> Self:
        self.quiz_data = _encode_quiz(self.content_type, self.quiz_data)
        return self


class UpdateLessonRequest(BaseModel):
    """Lesson update request."""

    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, max_length=100_000)
    content_type: ContentType | None = None
    position: int | None = Field(None, ge=0)
    duration: int | None = Field(None, ge=0)
    is_required: bool | None = None
    quiz_data: dict[str, Any] | str | None = None

    @model_validator(mode="after")
    def validate_quiz_data(self) -> Self:
        if self.quiz_data is not None:
            self.quiz_data = check_gradable(decode_quiz_payload(self.quiz_data)).encode()
        return self


class LessonResponse(BaseModel):
    """Lesson response. `quiz_data` is the stored (encoded) payload."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    module_id: UUID
    course_id: UUID
    title: str
    content: str | None = None
    content_type: ContentType
    position: int
    duration: int | None = None
    is_required: bool = True
    quiz_data: str | None = None
    created_at: datetime


# ==============================================================================
# Module Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    """Module creation request."""

    course_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    position: int | None = Field(None, ge=0, description="Defaults to the end")


class UpdateModuleRequest(BaseModel):
    """Module update request."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    position: int | None = Field(None, ge=0)


class ModuleResponse(BaseModel):
    """Module response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    position: int
    created_at: datetime


class ModuleWithLessonsResponse(ModuleResponse):
    """Module with its ordered lessons."""

    lessons: list[LessonResponse] = Field(default_factory=list)
