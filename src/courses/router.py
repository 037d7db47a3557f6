"""Course management API endpoints.

Provides routes for:
- Courses: CRUD and the module outline
- Modules: CRUD and lesson listing
- Lessons: CRUD operations
"""

from uuid import UUID

from fastapi import APIRouter, Response, status

from src.auth.dependencies import AdminUser, CurrentUser
from src.auth.permissions import RoleKind, assert_never
from src.auth.schemas import SessionUser
from src.courses.dependencies import (
    CourseServiceDep,
    EditableCourse,
    EditableLesson,
    EditableModule,
    LessonServiceDep,
    ModuleServiceDep,
    ViewableCourse,
    ensure_course_view_access,
    handle_course_error,
)
from src.courses.models import Lesson
from src.courses.schemas import (
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateModuleRequest,
    LessonResponse,
    ModuleResponse,
    ModuleWithLessonsResponse,
    UpdateCourseRequest,
    UpdateLessonRequest,
    UpdateModuleRequest,
)
from src.courses.service import CourseError, LessonService
from src.progress.dependencies import ProgressServiceDep


def lesson_view(
    lesson_service: LessonService, lesson: Lesson, user: SessionUser
) -> LessonResponse:
    """Lesson as the caller may see it.

    Students never receive the stored quiz payload, which carries the
    correct answers; they read quizzes through the quiz endpoint.
    """
    response = lesson_service.to_response(lesson)
    if user.kind is RoleKind.STUDENT:
        response.quiz_data = None
    return response


# ==============================================================================
# Courses Router
# ==============================================================================

router_courses = APIRouter(prefix="/api/courses", tags=["courses"])


@router_courses.get(
    "",
    response_model=list[CourseResponse],
    summary="List courses",
)
async def list_courses(
    user: CurrentUser,
    course_service: CourseServiceDep,
    progress_service: ProgressServiceDep,
) -> list[CourseResponse]:
    """List the tenant's courses the caller may open.

    Admins see every course. Students see open courses and the ones they
    are enrolled in.
    """
    courses = await course_service.list_tenant_courses(user.tenant_id)
    match user.kind:
        case RoleKind.ADMIN:
            return courses
        case RoleKind.STUDENT:
            enrolled = {
                e.course_id
                for e in await progress_service.list_user_enrollments(user.id)
            }
            return [
                c for c in courses if c.id in enrolled or not c.is_enrollment_required
            ]
        case _ as unreachable:
            assert_never(unreachable)


@router_courses.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new course",
)
async def create_course(
    data: CreateCourseRequest,
    user: AdminUser,
    course_service: CourseServiceDep,
) -> CourseResponse:
    """Create a new course in the caller's tenant (admin only)."""
    course = await course_service.create_course(user.tenant_id, data, user.id)
    return course_service.to_response(course)


@router_courses.get(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Get course details",
)
async def get_course(
    course: ViewableCourse,
    course_service: CourseServiceDep,
) -> CourseResponse:
    """Get a course. Students need enrollment when the course requires it."""
    return course_service.to_response(course)


@router_courses.put(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    data: UpdateCourseRequest,
    course: EditableCourse,
    course_service: CourseServiceDep,
) -> CourseResponse:
    """Update course (admin only)."""
    course = await course_service.update_course(course, data)
    return course_service.to_response(course)


@router_courses.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
)
async def delete_course(
    course: EditableCourse,
    course_service: CourseServiceDep,
) -> Response:
    """Delete a course with its modules and lessons (admin only)."""
    await course_service.delete_course(course)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router_courses.get(
    "/{course_id}/modules",
    response_model=list[ModuleWithLessonsResponse],
    summary="List course modules with lessons",
)
async def list_course_modules(
    course: ViewableCourse,
    user: CurrentUser,
    module_service: ModuleServiceDep,
    lesson_service: LessonServiceDep,
) -> list[ModuleWithLessonsResponse]:
    """Modules ordered by position, each with its ordered lessons."""
    outline = []
    for module in await module_service.list_course_modules(course.id):
        lessons = await lesson_service.list_module_lessons(module.id)
        outline.append(
            ModuleWithLessonsResponse(
                **module_service.to_response(module).model_dump(),
                lessons=[
                    lesson_view(lesson_service, lesson, user) for lesson in lessons
                ],
            )
        )
    return outline


# ==============================================================================
# Modules Router
# ==============================================================================

router_modules = APIRouter(prefix="/api/modules", tags=["modules"])


@router_modules.post(
    "",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new module",
)
async def create_module(
    data: CreateModuleRequest,
    user: AdminUser,
    course_service: CourseServiceDep,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    """Create a module in a course of the caller's tenant (admin only)."""
    try:
        course = await course_service.require_tenant_course(
            data.course_id, user.tenant_id
        )
    except CourseError as e:
        raise handle_course_error(e) from e

    module = await module_service.create_module(course, data)
    return module_service.to_response(module)


@router_modules.put(
    "/{module_id}",
    response_model=ModuleResponse,
    summary="Update module",
)
async def update_module(
    data: UpdateModuleRequest,
    module: EditableModule,
    module_service: ModuleServiceDep,
) -> ModuleResponse:
    """Update module (admin only)."""
    module = await module_service.update_module(module, data)
    return module_service.to_response(module)


@router_modules.delete(
    "/{module_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete module",
)
async def delete_module(
    module: EditableModule,
    module_service: ModuleServiceDep,
) -> Response:
    """Delete a module and its lessons (admin only)."""
    await module_service.delete_module(module)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router_modules.get(
    "/{module_id}/lessons",
    response_model=list[LessonResponse],
    summary="List module lessons",
)
async def list_module_lessons(
    module_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
    module_service: ModuleServiceDep,
    lesson_service: LessonServiceDep,
    progress_service: ProgressServiceDep,
) -> list[LessonResponse]:
    """Lessons of a module ordered by position (course access rules apply)."""
    try:
        module = await module_service.require_tenant_module(
            module_id, user.tenant_id
        )
        course = await course_service.require_tenant_course(
            module.course_id, user.tenant_id
        )
        await ensure_course_view_access(user, course, progress_service)
    except CourseError as e:
        raise handle_course_error(e) from e

    lessons = await lesson_service.list_module_lessons(module.id)
    return [lesson_view(lesson_service, lesson, user) for lesson in lessons]


# ==============================================================================
# Lessons Router
# ==============================================================================

router_lessons = APIRouter(prefix="/api/lessons", tags=["lessons"])


@router_lessons.post(
    "",
    response_model=LessonResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new lesson",
)
async def create_lesson(
    data: CreateLessonRequest,
    user: AdminUser,
    module_service: ModuleServiceDep,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    """Create a lesson in a module of the caller's tenant (admin only)."""
    try:
        module = await module_service.require_tenant_module(
            data.module_id, user.tenant_id
        )
    except CourseError as e:
        raise handle_course_error(e) from e

    lesson = await lesson_service.create_lesson(module, data)
    return lesson_service.to_response(lesson)


@router_lessons.get(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Get lesson details",
)
async def get_lesson(
    lesson_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
    lesson_service: LessonServiceDep,
    progress_service: ProgressServiceDep,
) -> LessonResponse:
    """Get a lesson (course access rules apply)."""
    try:
        lesson = await lesson_service.require_tenant_lesson(
            lesson_id, user.tenant_id
        )
        course = await course_service.require_tenant_course(
            lesson.course_id, user.tenant_id
        )
        await ensure_course_view_access(user, course, progress_service)
    except CourseError as e:
        raise handle_course_error(e) from e

    return lesson_view(lesson_service, lesson, user)


@router_lessons.put(
    "/{lesson_id}",
    response_model=LessonResponse,
    summary="Update lesson",
)
async def update_lesson(
    data: UpdateLessonRequest,
    lesson: EditableLesson,
    lesson_service: LessonServiceDep,
) -> LessonResponse:
    """Update lesson (admin only).

    Switching a lesson to the quiz type requires a gradable `quiz_data`.
    """
    try:
        lesson = await lesson_service.update_lesson(lesson, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return lesson_service.to_response(lesson)


@router_lessons.delete(
    "/{lesson_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete lesson",
)
async def delete_lesson(
    lesson: EditableLesson,
    lesson_service: LessonServiceDep,
) -> Response:
    """Delete a lesson (admin only)."""
    await lesson_service.delete_lesson(lesson)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
