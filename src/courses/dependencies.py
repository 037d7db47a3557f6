"""FastAPI dependencies for course management.

Provides dependency injection for:
- Service instances
- Tenant and enrollment checks for course content
- Admin-only edit access
"""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status

from src.auth.dependencies import AdminUser, CurrentUser
from src.auth.permissions import RoleKind, assert_never
from src.auth.schemas import SessionUser
from src.courses.models import Course, Lesson, Module
from src.courses.service import (
    CourseError,
    CourseService,
    EnrollmentRequiredError,
    LessonService,
    ModuleService,
)
from src.progress.dependencies import ProgressServiceDep


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_course_service_getter: Callable[[], CourseService] | None = None
_module_service_getter: Callable[[], ModuleService] | None = None
_lesson_service_getter: Callable[[], LessonService] | None = None


def set_course_service_getter(getter: Callable[[], CourseService]) -> None:
    """Set the course service getter function."""
    global _course_service_getter  # noqa: PLW0603 - Required for DI pattern
    _course_service_getter = getter


def set_module_service_getter(getter: Callable[[], ModuleService]) -> None:
    """Set the module service getter function."""
    global _module_service_getter  # noqa: PLW0603 - Required for DI pattern
    _module_service_getter = getter


def set_lesson_service_getter(getter: Callable[[], LessonService]) -> None:
    """Set the lesson service getter function."""
    global _lesson_service_getter  # noqa: PLW0603 - Required for DI pattern
    _lesson_service_getter = getter


def get_course_service() -> CourseService:
    """Get CourseService instance from app state."""
    if _course_service_getter is None:
        msg = "CourseService not configured"
        raise RuntimeError(msg)
    return _course_service_getter()


def get_module_service() -> ModuleService:
    """Get ModuleService instance from app state."""
    if _module_service_getter is None:
        msg = "ModuleService not configured"
        raise RuntimeError(msg)
    return _module_service_getter()


def get_lesson_service() -> LessonService:
    """Get LessonService instance from app state."""
    if _lesson_service_getter is None:
        msg = "LessonService not configured"
        raise RuntimeError(msg)
    return _lesson_service_getter()


# ==============================================================================
# Type Aliases for Dependencies
# ==============================================================================

CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
ModuleServiceDep = Annotated[ModuleService, Depends(get_module_service)]
LessonServiceDep = Annotated[LessonService, Depends(get_lesson_service)]


# ==============================================================================
# Visibility Rules
# ==============================================================================


def can_view_course(user: SessionUser, course: Course, is_enrolled: bool) -> bool:
    """Check if a user of the course's tenant may open it.

    Rules:
    - ADMIN kind: every course
    - STUDENT kind: open courses, and courses they are enrolled in
    """
    match user.kind:
        case RoleKind.ADMIN:
            return True
        case RoleKind.STUDENT:
            return is_enrolled or not course.is_enrollment_required
        case _ as unreachable:
            assert_never(unreachable)


async def ensure_course_view_access(
    user: SessionUser,
    course: Course,
    progress_service: ProgressServiceDep,
) -> None:
    """Raise EnrollmentRequiredError when a student may not open the course."""
    if user.kind is RoleKind.ADMIN or not course.is_enrollment_required:
        return
    enrolled = await progress_service.is_enrolled(user.id, course.id)
    if not can_view_course(user, course, enrolled):
        raise EnrollmentRequiredError


# ==============================================================================
# Course Access Dependencies
# ==============================================================================


async def verify_course_view_access(
    course_id: UUID,
    user: CurrentUser,
    course_service: CourseServiceDep,
    progress_service: ProgressServiceDep,
) -> Course:
    """Verify user can view a course (tenant and enrollment)."""
    try:
        course = await course_service.require_tenant_course(course_id, user.tenant_id)
        await ensure_course_view_access(user, course, progress_service)
    except CourseError as e:
        raise handle_course_error(e) from e
    return course


async def verify_course_edit_access(
    course_id: UUID,
    user: AdminUser,
    course_service: CourseServiceDep,
) -> Course:
    """Verify user can edit a course (admin of the same tenant)."""
    try:
        return await course_service.require_tenant_course(course_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e


async def verify_module_edit_access(
    module_id: UUID,
    user: AdminUser,
    module_service: ModuleServiceDep,
) -> Module:
    """Verify user can edit a module (admin of the same tenant)."""
    try:
        return await module_service.require_tenant_module(module_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e


async def verify_lesson_edit_access(
    lesson_id: UUID,
    user: AdminUser,
    lesson_service: LessonServiceDep,
) -> Lesson:
    """Verify user can edit a lesson (admin of the same tenant)."""
    try:
        return await lesson_service.require_tenant_lesson(lesson_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e


ViewableCourse = Annotated[Course, Depends(verify_course_view_access)]
EditableCourse = Annotated[Course, Depends(verify_course_edit_access)]
EditableModule = Annotated[Module, Depends(verify_module_edit_access)]
EditableLesson = Annotated[Lesson, Depends(verify_lesson_edit_access)]


# ==============================================================================
# Error Handlers
# ==============================================================================


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTPException."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "module_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
        "access_denied": status.HTTP_403_FORBIDDEN,
        "enrollment_required": status.HTTP_403_FORBIDDEN,
        "invalid_quiz": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "not_a_quiz": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
