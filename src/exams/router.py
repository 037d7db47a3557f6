"""Exam API endpoints.

Provides routes for:
- Exams: CRUD
- Questions: ordered free-text prompts of an exam
- Attempts: start, answer, submit
- Grading: admin review and the student's results
"""

from uuid import UUID

from fastapi import APIRouter, Response, status

from src.activity.dependencies import ActivityWriterDep
from src.activity.models import ActivityType
from src.auth.dependencies import AdminUser, CurrentUser
from src.auth.permissions import RoleKind
from src.auth.router import AuthServiceDep, handle_auth_error
from src.auth.schemas import SessionUser
from src.auth.service import AuthError
from src.courses.dependencies import CourseServiceDep, handle_course_error
from src.courses.service import CourseError, CourseService

from .dependencies import ExamServiceDep, handle_exam_error
from .models import ExamAttempt
from .schemas import (
    AddQuestionRequest,
    AttemptResponse,
    AttemptWithExamResponse,
    CreateExamRequest,
    CreateQuestionRequest,
    ExamResponse,
    GradeAttemptRequest,
    GradingAttemptResponse,
    QuestionResponse,
    StartAttemptRequest,
    UpdateAttemptRequest,
    UpdateExamRequest,
    UpdateQuestionRequest,
)
from .service import ExamAccessDeniedError, ExamError, ExamService


router_exams = APIRouter(prefix="/api/exams", tags=["exams"])
router_questions = APIRouter(prefix="/api/questions", tags=["exams"])
router_attempts = APIRouter(prefix="/api/exam-attempts", tags=["exam-attempts"])
router_grading = APIRouter(prefix="/api/grading", tags=["grading"])


async def _check_course(
    course_service: CourseService, course_id: UUID, user: SessionUser
) -> None:
    try:
        await course_service.require_tenant_course(course_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e


async def _with_exams(
    attempts: list[ExamAttempt], exam_service: ExamService
) -> list[AttemptWithExamResponse]:
    """Embed each attempt's exam."""
    exams: dict[UUID, ExamResponse | None] = {}
    items = []
    for attempt in attempts:
        if attempt.exam_id not in exams:
            exam = await exam_service.get_exam(attempt.exam_id)
            exams[attempt.exam_id] = exam_service.to_response(exam) if exam else None
        items.append(
            AttemptWithExamResponse(
                **exam_service.attempt_response(attempt).model_dump(),
                exam=exams[attempt.exam_id],
            )
        )
    return items


# ==============================================================================
# Exams
# ==============================================================================


@router_exams.get("", response_model=list[ExamResponse], summary="List exams")
async def list_exams(
    user: CurrentUser,
    exam_service: ExamServiceDep,
) -> list[ExamResponse]:
    """Exams of the caller's tenant, newest first."""
    exams = await exam_service.list_tenant_exams(user.tenant_id)
    return [exam_service.to_response(e) for e in exams]


@router_exams.get("/{exam_id}", response_model=ExamResponse, summary="Get exam")
async def get_exam(
    exam_id: UUID,
    user: CurrentUser,
    exam_service: ExamServiceDep,
) -> ExamResponse:
    try:
        exam = await exam_service.require_tenant_exam(exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e
    return exam_service.to_response(exam)


@router_exams.post(
    "",
    response_model=ExamResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create exam",
)
async def create_exam(
    data: CreateExamRequest,
    user: AdminUser,
    course_service: CourseServiceDep,
    exam_service: ExamServiceDep,
) -> ExamResponse:
    """Create an exam for a course of the caller's tenant (admin only)."""
    await _check_course(course_service, data.course_id, user)
    exam = await exam_service.create_exam(user.tenant_id, data, user.id)
    return exam_service.to_response(exam)


@router_exams.put("/{exam_id}", response_model=ExamResponse, summary="Update exam")
async def update_exam(
    exam_id: UUID,
    data: UpdateExamRequest,
    user: AdminUser,
    course_service: CourseServiceDep,
    exam_service: ExamServiceDep,
) -> ExamResponse:
    """Update title, description, course or whether responses are accepted."""
    try:
        exam = await exam_service.require_tenant_exam(exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    if data.course_id is not None:
        await _check_course(course_service, data.course_id, user)

    exam = await exam_service.update_exam(exam, data)
    return exam_service.to_response(exam)


@router_exams.delete(
    "/{exam_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete exam",
)
async def delete_exam(
    exam_id: UUID,
    user: AdminUser,
    exam_service: ExamServiceDep,
) -> Response:
    try:
        exam = await exam_service.require_tenant_exam(exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    await exam_service.delete_exam(exam)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==============================================================================
# Questions
# ==============================================================================


@router_exams.get(
    "/{exam_id}/questions",
    response_model=list[QuestionResponse],
    summary="List exam questions",
)
async def list_exam_questions(
    exam_id: UUID,
    user: CurrentUser,
    exam_service: ExamServiceDep,
) -> list[QuestionResponse]:
    """Questions ordered by position."""
    try:
        exam = await exam_service.require_tenant_exam(exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    questions = await exam_service.list_exam_questions(exam.id)
    return [exam_service.question_response(q) for q in questions]


@router_exams.post(
    "/{exam_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add question to exam",
)
async def add_exam_question(
    exam_id: UUID,
    data: AddQuestionRequest,
    user: AdminUser,
    exam_service: ExamServiceDep,
) -> QuestionResponse:
    """Add a question. Position defaults to the current question count."""
    try:
        exam = await exam_service.require_tenant_exam(exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    question = await exam_service.add_question(exam, data)
    return exam_service.question_response(question)


@router_exams.delete(
    "/{exam_id}/questions",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete all exam questions",
)
async def delete_exam_questions(
    exam_id: UUID,
    user: AdminUser,
    exam_service: ExamServiceDep,
) -> Response:
    try:
        exam = await exam_service.require_tenant_exam(exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    await exam_service.delete_exam_questions(exam)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router_questions.post(
    "",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create question",
)
async def create_question(
    data: CreateQuestionRequest,
    user: AdminUser,
    exam_service: ExamServiceDep,
) -> QuestionResponse:
    try:
        exam = await exam_service.require_tenant_exam(data.exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    question = await exam_service.add_question(exam, data)
    return exam_service.question_response(question)


@router_questions.put(
    "/{question_id}",
    response_model=QuestionResponse,
    summary="Update question",
)
async def update_question(
    question_id: UUID,
    data: UpdateQuestionRequest,
    user: AdminUser,
    exam_service: ExamServiceDep,
) -> QuestionResponse:
    try:
        question = await exam_service.require_tenant_question(
            question_id, user.tenant_id
        )
    except ExamError as e:
        raise handle_exam_error(e) from e

    question = await exam_service.update_question(question, data)
    return exam_service.question_response(question)


@router_questions.delete(
    "/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete question",
)
async def delete_question(
    question_id: UUID,
    user: AdminUser,
    exam_service: ExamServiceDep,
) -> Response:
    try:
        question = await exam_service.require_tenant_question(
            question_id, user.tenant_id
        )
    except ExamError as e:
        raise handle_exam_error(e) from e

    await exam_service.delete_question(question)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ==============================================================================
# Attempts
# ==============================================================================


@router_attempts.get(
    "/user",
    response_model=list[AttemptResponse],
    summary="List my attempts",
)
async def list_my_attempts(
    user: CurrentUser,
    exam_service: ExamServiceDep,
) -> list[AttemptResponse]:
    attempts = await exam_service.list_user_attempts(user.id)
    return [exam_service.attempt_response(a) for a in attempts]


@router_attempts.get(
    "/user/{user_id}",
    response_model=list[AttemptWithExamResponse],
    summary="List a student's attempts",
)
async def list_user_attempts(
    user_id: UUID,
    user: AdminUser,
    auth_service: AuthServiceDep,
    exam_service: ExamServiceDep,
) -> list[AttemptWithExamResponse]:
    """Attempts of a user of the caller's tenant, with exams (admin only)."""
    try:
        await auth_service.get_tenant_user(user, user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    attempts = await exam_service.list_user_attempts(user_id)
    return await _with_exams(attempts, exam_service)


@router_attempts.get(
    "/exam/{exam_id}",
    response_model=list[AttemptResponse],
    summary="List exam attempts",
)
async def list_exam_attempts(
    exam_id: UUID,
    user: AdminUser,
    exam_service: ExamServiceDep,
) -> list[AttemptResponse]:
    try:
        exam = await exam_service.require_tenant_exam(exam_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    attempts = await exam_service.list_exam_attempts(exam.id)
    return [exam_service.attempt_response(a) for a in attempts]


@router_attempts.post(
    "",
    response_model=AttemptResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start exam attempt",
)
async def start_attempt(
    data: StartAttemptRequest,
    user: CurrentUser,
    exam_service: ExamServiceDep,
    activity: ActivityWriterDep,
) -> AttemptResponse:
    """Start an attempt at an exam that is accepting responses."""
    try:
        exam = await exam_service.require_tenant_exam(data.exam_id, user.tenant_id)
        attempt = await exam_service.start_attempt(user.id, exam)
    except ExamError as e:
        raise handle_exam_error(e) from e

    activity.emit(user.tenant_id, user.id, ActivityType.EXAM_START, exam.id, "exam")
    return exam_service.attempt_response(attempt)


@router_attempts.put(
    "/{attempt_id}",
    response_model=AttemptResponse,
    summary="Save or submit exam attempt",
)
async def update_attempt(
    attempt_id: UUID,
    data: UpdateAttemptRequest,
    user: CurrentUser,
    exam_service: ExamServiceDep,
    activity: ActivityWriterDep,
) -> AttemptResponse:
    """Save answers, and submit with `completed` (owner or admin)."""
    try:
        attempt = await exam_service.require_tenant_attempt(attempt_id, user.tenant_id)
        if attempt.user_id != user.id and user.kind is not RoleKind.ADMIN:
            raise ExamAccessDeniedError("Access denied to this exam attempt")
        attempt, submitted = await exam_service.update_attempt(attempt, data)
    except ExamError as e:
        raise handle_exam_error(e) from e

    if submitted:
        activity.emit(
            user.tenant_id,
            attempt.user_id,
            ActivityType.EXAM_COMPLETE,
            attempt.exam_id,
            "exam",
        )
    return exam_service.attempt_response(attempt)


# ==============================================================================
# Grading
# ==============================================================================


@router_grading.get(
    "/attempts",
    response_model=list[GradingAttemptResponse],
    summary="List attempts to grade",
)
async def list_grading_attempts(
    user: AdminUser,
    auth_service: AuthServiceDep,
    exam_service: ExamServiceDep,
    pending: bool = False,
) -> list[GradingAttemptResponse]:
    """Submitted attempts of the tenant with user and exam, newest first.

    With `pending`, only attempts that were not reviewed yet.
    """
    attempts = [
        a
        for a in await exam_service.list_tenant_attempts(user.tenant_id)
        if a.is_completed and not (pending and a.is_reviewed)
    ]

    items = []
    for item in await _with_exams(attempts, exam_service):
        author = await auth_service.get_user_by_id(item.user_id)
        items.append(
            GradingAttemptResponse(
                **item.model_dump(),
                user=auth_service.to_response(author) if author else None,
            )
        )
    return items


@router_grading.put(
    "/attempts/{attempt_id}",
    response_model=AttemptResponse,
    summary="Grade attempt",
)
async def grade_attempt(
    attempt_id: UUID,
    data: GradeAttemptRequest,
    user: AdminUser,
    exam_service: ExamServiceDep,
    activity: ActivityWriterDep,
) -> AttemptResponse:
    """Record feedback and mark the attempt reviewed (admin only)."""
    try:
        attempt = await exam_service.require_tenant_attempt(attempt_id, user.tenant_id)
    except ExamError as e:
        raise handle_exam_error(e) from e

    attempt = await exam_service.grade_attempt(attempt, data.feedback)
    activity.emit(
        user.tenant_id, user.id, ActivityType.EXAM_GRADED, attempt.id, "exam_attempt"
    )
    return exam_service.attempt_response(attempt)


@router_grading.get(
    "/results",
    response_model=list[AttemptWithExamResponse],
    summary="My exam results",
)
async def list_my_results(
    user: CurrentUser,
    exam_service: ExamServiceDep,
) -> list[AttemptWithExamResponse]:
    """The caller's submitted attempts with exam and feedback."""
    attempts = [
        a for a in await exam_service.list_user_attempts(user.id) if a.is_completed
    ]
    return await _with_exams(attempts, exam_service)
