"""Student progress tracking API endpoints.

Provides routes for:
- Course enrollment (self-enroll and admin assignment)
- Lesson completion
- Course progress views and admin reports
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.activity.dependencies import ActivityWriterDep
from src.activity.models import ActivityType
from src.auth.dependencies import AdminUser, CurrentUser
from src.auth.permissions import RoleKind
from src.auth.router import AuthServiceDep, handle_auth_error
from src.auth.service import AuthError
from src.courses.dependencies import (
    CourseServiceDep,
    LessonServiceDep,
    handle_course_error,
)
from src.courses.service import CourseError, CourseService

from .dependencies import ProgressServiceDep, handle_progress_error
from .models import Enrollment
from .schemas import (
    AdminCourseProgressResponse,
    AssignEnrollmentRequest,
    CourseProgressResponse,
    EnrollmentResponse,
    EnrollmentWithCourseResponse,
    EnrollRequest,
    LessonProgressResponse,
    MarkLessonCompleteRequest,
    RecalculateProgressRequest,
    RecalculateProgressResponse,
    UpdateEnrollmentRequest,
)
from .service import (
    EnrollmentAccessDeniedError,
    NotEnrolledError,
    ProgressError,
    ProgressService,
)


enrollments_router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])
lesson_progress_router = APIRouter(prefix="/api/lesson-progress", tags=["progress"])
router = APIRouter(prefix="/api", tags=["progress"])


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.get(
    "/user",
    response_model=list[EnrollmentWithCourseResponse],
    summary="List my enrollments",
)
async def list_my_enrollments(
    user: CurrentUser,
    progress_service: ProgressServiceDep,
    course_service: CourseServiceDep,
) -> list[EnrollmentWithCourseResponse]:
    """Get the caller's enrollments with their courses, newest first."""
    return await _with_courses(
        await progress_service.list_user_enrollments(user.id),
        progress_service,
        course_service,
    )


@enrollments_router.get(
    "/user/{user_id}",
    response_model=list[EnrollmentWithCourseResponse],
    summary="List a student's enrollments",
)
async def list_user_enrollments(
    user_id: UUID,
    user: AdminUser,
    auth_service: AuthServiceDep,
    progress_service: ProgressServiceDep,
    course_service: CourseServiceDep,
) -> list[EnrollmentWithCourseResponse]:
    """Enrollments of a user of the caller's tenant (admin only)."""
    try:
        await auth_service.get_tenant_user(user, user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    return await _with_courses(
        await progress_service.list_user_enrollments(user_id),
        progress_service,
        course_service,
    )


@enrollments_router.get(
    "/course/{course_id}",
    response_model=list[EnrollmentResponse],
    summary="List course enrollments",
)
async def list_course_enrollments(
    course_id: UUID,
    user: AdminUser,
    course_service: CourseServiceDep,
    progress_service: ProgressServiceDep,
) -> list[EnrollmentResponse]:
    """Enrollments of a course of the caller's tenant (admin only)."""
    try:
        course = await course_service.require_tenant_course(course_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    enrollments = await progress_service.list_course_enrollments(course.id)
    return [progress_service.to_response(e) for e in enrollments]


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll_in_course(
    data: EnrollRequest,
    user: CurrentUser,
    course_service: CourseServiceDep,
    progress_service: ProgressServiceDep,
    activity: ActivityWriterDep,
) -> EnrollmentResponse:
    """Enroll the caller in a course of their tenant."""
    try:
        course = await course_service.require_tenant_course(
            data.course_id, user.tenant_id
        )
    except CourseError as e:
        raise handle_course_error(e) from e

    try:
        enrollment = await progress_service.enroll_user(
            user.tenant_id, user.id, course.id
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    activity.emit(
        user.tenant_id, user.id, ActivityType.COURSE_ENROLL, course.id, "course"
    )
    return progress_service.to_response(enrollment)


@enrollments_router.put(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Update enrollment",
)
async def update_enrollment(
    enrollment_id: UUID,
    data: UpdateEnrollmentRequest,
    user: CurrentUser,
    progress_service: ProgressServiceDep,
) -> EnrollmentResponse:
    """Set progress or completion (owner or admin)."""
    try:
        enrollment = await progress_service.require_tenant_enrollment(
            enrollment_id, user.tenant_id
        )
        if enrollment.user_id != user.id and user.kind is not RoleKind.ADMIN:
            raise EnrollmentAccessDeniedError
        enrollment = await progress_service.update_enrollment(enrollment, data)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return progress_service.to_response(enrollment)


@enrollments_router.post(
    "/assign",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Assign course to student",
)
async def assign_course(
    data: AssignEnrollmentRequest,
    user: AdminUser,
    auth_service: AuthServiceDep,
    course_service: CourseServiceDep,
    progress_service: ProgressServiceDep,
    activity: ActivityWriterDep,
) -> EnrollmentResponse:
    """Enroll a user of the tenant in a course (admin only)."""
    try:
        student = await auth_service.get_tenant_user(user, data.user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    try:
        course = await course_service.require_tenant_course(
            data.course_id, user.tenant_id
        )
    except CourseError as e:
        raise handle_course_error(e) from e

    try:
        enrollment = await progress_service.enroll_user(
            user.tenant_id, student.id, course.id
        )
    except ProgressError as e:
        raise handle_progress_error(e) from e

    activity.emit(
        user.tenant_id, student.id, ActivityType.COURSE_ASSIGN, course.id, "course"
    )
    return progress_service.to_response(enrollment)


async def _with_courses(
    enrollments: list[Enrollment],
    progress_service: ProgressService,
    course_service: CourseService,
) -> list[EnrollmentWithCourseResponse]:
    """Embed each enrollment's course."""
    items = []
    for enrollment in enrollments:
        course = await course_service.get_course(enrollment.course_id)
        items.append(
            EnrollmentWithCourseResponse(
                **progress_service.to_response(enrollment).model_dump(),
                course=course_service.to_response(course) if course else None,
            )
        )
    return items


# ==============================================================================
# Lesson Progress Endpoints
# ==============================================================================


@lesson_progress_router.get(
    "/{lesson_id}",
    response_model=LessonProgressResponse,
    summary="Get lesson completion",
)
async def get_lesson_progress(
    lesson_id: UUID,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
    progress_service: ProgressServiceDep,
) -> LessonProgressResponse:
    """Completion status of a lesson for the caller."""
    try:
        await lesson_service.require_tenant_lesson(lesson_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    record = await progress_service.get_lesson_progress(user.id, lesson_id)
    if record is None:
        return LessonProgressResponse(lesson_id=lesson_id, user_id=user.id)
    return LessonProgressResponse.model_validate(record)


@lesson_progress_router.post(
    "",
    response_model=LessonProgressResponse,
    summary="Mark lesson complete",
)
async def mark_lesson_complete(
    data: MarkLessonCompleteRequest,
    user: CurrentUser,
    lesson_service: LessonServiceDep,
    progress_service: ProgressServiceDep,
    activity: ActivityWriterDep,
) -> LessonProgressResponse:
    """Mark a lesson complete and recalculate the course progress.

    Repeating the call returns the existing record.
    """
    try:
        lesson = await lesson_service.require_tenant_lesson(
            data.lesson_id, user.tenant_id
        )
    except CourseError as e:
        raise handle_course_error(e) from e

    try:
        progress_service.check_lesson_chain(lesson, data.module_id, data.course_id)
        record, created = await progress_service.complete_lesson(user.id, lesson)
    except ProgressError as e:
        raise handle_progress_error(e) from e

    if created:
        activity.emit(
            user.tenant_id, user.id, ActivityType.LESSON_COMPLETE, lesson.id, "lesson"
        )
    return LessonProgressResponse.model_validate(record)


# ==============================================================================
# Course Progress Endpoints
# ==============================================================================


@router.get(
    "/course-progress/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get my course progress",
)
async def get_course_progress(
    course_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
    progress_service: ProgressServiceDep,
) -> CourseProgressResponse:
    """Modules with lessons marked completed, plus the enrollment progress.

    Only enrolled users have progress to show.
    """
    try:
        course = await course_service.require_tenant_course(course_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    if not await progress_service.is_enrolled(user.id, course.id):
        raise handle_progress_error(
            NotEnrolledError("You must be enrolled in this course to view progress")
        )
    return await progress_service.get_course_progress(user.id, course)


@router.get(
    "/admin/course-progress/{course_id}",
    response_model=AdminCourseProgressResponse,
    summary="Course progress report",
)
async def get_admin_course_progress(
    course_id: UUID,
    user: AdminUser,
    auth_service: AuthServiceDep,
    course_service: CourseServiceDep,
    progress_service: ProgressServiceDep,
) -> AdminCourseProgressResponse:
    """Per enrolled student, per module completion (admin only)."""
    try:
        course = await course_service.require_tenant_course(course_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    students = await progress_service.get_admin_course_progress(course)
    for line in students:
        student = await auth_service.get_user_by_id(line.user_id)
        if student is not None:
            line.username = student.username
            line.first_name = student.first_name
            line.last_name = student.last_name

    return AdminCourseProgressResponse(
        course_id=course.id,
        title=course.title,
        students=students,
    )


@router.post(
    "/admin/recalculate-progress",
    response_model=RecalculateProgressResponse,
    summary="Recalculate course progress",
)
async def recalculate_progress(
    data: RecalculateProgressRequest,
    user: AdminUser,
    progress_service: ProgressServiceDep,
) -> RecalculateProgressResponse:
    """Recompute enrollment progress from lesson completions (admin only).

    Scope: user+course, a course, a user, or the whole tenant.
    """
    updates = await progress_service.recalculate(
        user.tenant_id, data.user_id, data.course_id
    )
    changed = sum(1 for u in updates if u.old_progress != u.new_progress)
    return RecalculateProgressResponse(
        updated_count=len(updates),
        updates=updates,
        message=f"Recalculated {len(updates)} enrollments, {changed} changed",
    )
