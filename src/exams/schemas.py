"""Pydantic schemas for exams, questions and attempts."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.auth.schemas import UserResponse


# ==============================================================================
# Exam Schemas
# ==============================================================================


class CreateExamRequest(BaseModel):
    """Exam creation request."""

    course_id: UUID
    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    accepting_responses: bool = True


class UpdateExamRequest(BaseModel):
    """Exam update request."""

    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    course_id: UUID | None = None
    accepting_responses: bool | None = None


class ExamResponse(BaseModel):
    """Exam response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    accepting_responses: bool = True
    created_by: UUID | None = None
    created_at: datetime


# ==============================================================================
# Question Schemas
# ==============================================================================


class AddQuestionRequest(BaseModel):
    """Question added through its exam. Position defaults to the end."""

    text: str = Field(..., min_length=1, max_length=5000)
    position: int | None = Field(None, ge=0)


class CreateQuestionRequest(AddQuestionRequest):
    exam_id: UUID


class UpdateQuestionRequest(BaseModel):
    text: str | None = Field(None, min_length=1, max_length=5000)
    position: int | None = Field(None, ge=0)


class QuestionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    exam_id: UUID
    text: str
    position: int
    created_at: datetime


# ==============================================================================
# Attempt Schemas
# ==============================================================================


class StartAttemptRequest(BaseModel):
    exam_id: UUID


class UpdateAttemptRequest(BaseModel):
    """Save answers, and submit with `completed`.

    Answers are keyed by question id.
    """

    answers: dict[UUID, str] | None = None
    completed: bool = False


class AttemptResponse(BaseModel):
    """Exam attempt response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    user_id: UUID
    exam_id: UUID
    started_at: datetime
    completed_at: datetime | None = None
    answers: dict[str, str] = Field(default_factory=dict)
    feedback: str | None = None
    reviewed_at: datetime | None = None


class AttemptWithExamResponse(AttemptResponse):
    exam: ExamResponse | None = None


class GradingAttemptResponse(AttemptWithExamResponse):
    """Attempt as listed for grading, with its author."""

    user: UserResponse | None = None


class GradeAttemptRequest(BaseModel):
    feedback: str = Field(..., min_length=1, max_length=10_000)
