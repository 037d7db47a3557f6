"""Quiz lesson API endpoints.

Provides routes for:
- Reading a quiz (answers hidden from students)
- Submitting an attempt, graded by a QuizSession
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, status

from src.activity.dependencies import ActivityWriterDep
from src.activity.models import ActivityType
from src.auth.dependencies import CurrentUser
from src.auth.schemas import SessionUser
from src.courses.dependencies import (
    CourseServiceDep,
    LessonServiceDep,
    ensure_course_view_access,
    handle_course_error,
)
from src.courses.models import Lesson
from src.courses.service import CourseError, CourseService, LessonService
from src.progress.dependencies import ProgressServiceDep
from src.progress.service import ProgressService

from .payload import QuizPayload
from .schemas import (
    QuizAttemptRequest,
    QuizAttemptResponse,
    QuizResponse,
    quiz_questions_for,
)
from .session import InvalidOptionError, QuizSession, QuizState


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/lessons", tags=["quiz"])


async def _load_quiz(
    lesson_id: UUID,
    user: SessionUser,
    course_service: CourseService,
    lesson_service: LessonService,
    progress_service: ProgressService,
) -> tuple[Lesson, QuizPayload]:
    """Quiz lesson and its decoded payload, after the course access checks."""
    try:
        lesson = await lesson_service.require_tenant_lesson(lesson_id, user.tenant_id)
        course = await course_service.require_tenant_course(
            lesson.course_id, user.tenant_id
        )
        await ensure_course_view_access(user, course, progress_service)
        return lesson, lesson_service.get_quiz(lesson)
    except CourseError as e:
        raise handle_course_error(e) from e


@router.get(
    "/{lesson_id}/quiz",
    response_model=QuizResponse,
    summary="Get lesson quiz",
)
async def get_quiz(
    lesson_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    progress_service: ProgressServiceDep,
) -> QuizResponse:
    """Decoded quiz. Correctness flags are only returned to admins."""
    lesson, payload = await _load_quiz(
        lesson_id, user, course_service, lesson_service, progress_service
    )
    session = QuizSession(payload)
    return QuizResponse(
        lesson_id=lesson.id,
        state=session.state,
        total=session.total,
        questions=quiz_questions_for(payload, user.kind),
        empty_message=session.empty_message,
    )


@router.post(
    "/{lesson_id}/quiz/attempt",
    response_model=QuizAttemptResponse,
    summary="Submit quiz attempt",
)
async def submit_quiz_attempt(
    lesson_id: UUID,
    data: QuizAttemptRequest,
    user: CurrentUser,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    progress_service: ProgressServiceDep,
    activity: ActivityWriterDep,
) -> QuizAttemptResponse:
    """Grade an attempt.

    Answers are applied in question order (select, then advance). A
    submission that stops short of the last question stays in the
    answering state without a score. Finishing the quiz records
    `quiz_complete` activity and marks the lesson complete for enrolled
    students.
    """
    lesson, payload = await _load_quiz(
        lesson_id, user, course_service, lesson_service, progress_service
    )

    completed_runs: list[tuple[int, int]] = []

    def on_complete(score: int, total: int) -> None:
        completed_runs.append((score, total))
        activity.emit(
            user.tenant_id, user.id, ActivityType.QUIZ_COMPLETE, lesson.id, "lesson"
        )

    session = QuizSession(payload, on_complete=on_complete)
    if session.state is QuizState.EMPTY:
        return QuizAttemptResponse(
            lesson_id=lesson.id,
            state=session.state,
            total=0,
            empty_message=session.empty_message,
        )

    for index, answer in enumerate(data.answers):
        question = session.current_question
        if question is None:
            break
        if answer.question_id != question.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Expected an answer for question {question.id}",
            )
        try:
            session.select(index, answer.option_id)
        except InvalidOptionError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
            ) from e
        session.advance()

    if session.state is not QuizState.RESULTS:
        return QuizAttemptResponse(
            lesson_id=lesson.id,
            state=session.state,
            total=session.total,
            answered=len(session.answers),
        )

    score, total = completed_runs[0]
    logger.info(
        "quiz_completed",
        lesson_id=str(lesson.id),
        score=score,
        total=total,
    )

    lesson_completed = False
    if await progress_service.is_enrolled(user.id, lesson.course_id):
        _, created = await progress_service.complete_lesson(user.id, lesson)
        lesson_completed = True
        if created:
            activity.emit(
                user.tenant_id,
                user.id,
                ActivityType.LESSON_COMPLETE,
                lesson.id,
                "lesson",
            )

    return QuizAttemptResponse.from_results(
        lesson.id, session.results(), lesson_completed
    )
