"""Pydantic schemas for quiz lessons."""

from uuid import UUID

from pydantic import BaseModel, Field

from src.auth.permissions import RoleKind, assert_never

from .payload import QuizId, QuizPayload
from .session import QuizResults, QuizState, ScoreTier


class QuizOptionResponse(BaseModel):
    """Option as shown to the caller. `is_correct` is None when hidden."""

    id: str
    text: str
    is_correct: bool | None = None


class QuizQuestionResponse(BaseModel):
    id: str
    text: str
    options: list[QuizOptionResponse]


class QuizResponse(BaseModel):
    """Decoded quiz of a lesson."""

    lesson_id: UUID
    state: QuizState
    total: int
    questions: list[QuizQuestionResponse] = Field(default_factory=list)
    empty_message: str | None = None


def quiz_questions_for(
    payload: QuizPayload, kind: RoleKind
) -> list[QuizQuestionResponse]:
    """Questions with correctness flags kept for admins and hidden for students."""
    match kind:
        case RoleKind.ADMIN:
            reveal = True
        case RoleKind.STUDENT:
            reveal = False
        case _ as unreachable:
            assert_never(unreachable)

    return [
        QuizQuestionResponse(
            id=question.id,
            text=question.text,
            options=[
                QuizOptionResponse(
                    id=option.id,
                    text=option.text,
                    is_correct=option.is_correct if reveal else None,
                )
                for option in question.options
            ],
        )
        for question in payload.questions
    ]


class QuizAnswer(BaseModel):
    question_id: QuizId
    option_id: QuizId


class QuizAttemptRequest(BaseModel):
    """Answers in question order, one per question."""

    answers: list[QuizAnswer] = Field(default_factory=list)


class QuestionReviewResponse(BaseModel):
    question_id: str
    question_text: str
    selected_text: str
    correct_text: str
    is_correct: bool


class QuizAttemptResponse(BaseModel):
    """Outcome of a submitted attempt.

    Score fields are only set in the results state.
    """

    lesson_id: UUID
    state: QuizState
    total: int
    answered: int = 0
    score: int | None = None
    percentage: float | None = None
    display_percentage: int | None = None
    tier: ScoreTier | None = None
    review: list[QuestionReviewResponse] = Field(default_factory=list)
    lesson_completed: bool = False
    empty_message: str | None = None

    @classmethod
    def from_results(
        cls, lesson_id: UUID, results: QuizResults, lesson_completed: bool
    ) -> "QuizAttemptResponse":
        return cls(
            lesson_id=lesson_id,
            state=QuizState.RESULTS,
            total=results.total,
            answered=results.total,
            score=results.score,
            percentage=results.percentage,
            display_percentage=results.display_percentage,
            tier=results.tier,
            review=[
                QuestionReviewResponse(
                    question_id=line.question_id,
                    question_text=line.question_text,
                    selected_text=line.selected_text,
                    correct_text=line.correct_text,
                    is_correct=line.is_correct,
                )
                for line in results.review
            ],
            lesson_completed=lesson_completed,
        )
