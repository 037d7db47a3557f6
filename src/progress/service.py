"""Progress tracking service layer.

Business logic for:
- Course enrollment (one per user and course)
- Lesson completion (idempotent)
- Course progress recalculation
- Student and admin progress reports

Course progress is round(completed / required * 100), where `required` counts
the lessons flagged required, or every lesson when none is flagged.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.datetime_utils import utcnow
from src.courses.models import Course, Lesson
from src.courses.schemas import LessonResponse, ModuleResponse
from src.utils.percent import percent

from .models import Enrollment, LessonProgress
from .schemas import (
    CourseProgressResponse,
    EnrollmentResponse,
    LessonWithProgress,
    ModuleProgressSummary,
    ModuleWithProgress,
    ProgressUpdate,
    StudentCourseProgress,
    UpdateEnrollmentRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.courses.service import LessonService, ModuleService

logger = structlog.get_logger(__name__)

COMPLETE_PERCENT = 100


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotEnrolledError(ProgressError):
    """User not enrolled in course."""

    def __init__(self, message: str = "Not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ProgressError):
    """User already enrolled."""

    def __init__(self, message: str = "Already enrolled"):
        super().__init__(message, "already_enrolled")


class EnrollmentNotFoundError(ProgressError):
    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class EnrollmentAccessDeniedError(ProgressError):
    def __init__(self, message: str = "Access denied to this enrollment"):
        super().__init__(message, "access_denied")


class LessonMismatchError(ProgressError):
    """Lesson is not part of the given module or course."""

    def __init__(self, message: str = "Lesson does not belong to this module"):
        super().__init__(message, "lesson_mismatch")


def required_lessons(lessons: list[Lesson]) -> list[Lesson]:
    """Lessons that count towards completion."""
    flagged = [lesson for lesson in lessons if lesson.is_required]
    return flagged or lessons


def course_progress(lessons: list[Lesson], completed_ids: set[UUID]) -> int:
    """Progress percentage (0..100) of a course.

    Examples:
        >>> course_progress([], set())
        0
    """
    counted = required_lessons(lessons)
    done = sum(1 for lesson in counted if lesson.id in completed_ids)
    return percent(done, len(counted))


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for enrollments and lesson progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        module_service: "ModuleService",
        lesson_service: "LessonService",
    ):
        """Initialize with Cassandra session and course services."""
        self.session = session
        self.keyspace = keyspace
        self.module_service = module_service
        self.lesson_service = lesson_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments (
                user_id, course_id, id, tenant_id, enrolled_at, completed_at,
                progress
            ) VALUES (?, ?, ?, ?, ?, ?, ?) IF NOT EXISTS
        """)
        self._update_enrollment = self.session.prepare(f"""
            UPDATE {self.keyspace}.enrollments
            SET progress = ?, completed_at = ?
            WHERE user_id = ? AND course_id = ?
        """)
        self._get_enrollment = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments "
            "WHERE user_id = ? AND course_id = ?"
        )
        self._get_enrollment_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE id = ?"
        )
        self._get_user_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE user_id = ?"
        )
        self._get_course_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._get_tenant_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE tenant_id = ?"
        )

        self._get_lesson_progress = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lesson_progress "
            "WHERE user_id = ? AND lesson_id = ?"
        )
        self._get_user_course_progress = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lesson_progress "
            "WHERE user_id = ? AND course_id = ?"
        )
        self._get_course_progress = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lesson_progress WHERE course_id = ?"
        )
        self._insert_lesson_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lesson_progress (
                user_id, lesson_id, module_id, course_id, tenant_id,
                completed, completed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def enroll_user(
        self,
        tenant_id: UUID,
        user_id: UUID,
        course_id: UUID,
    ) -> Enrollment:
        """Enroll user in a course.

        Raises:
            AlreadyEnrolledError: If user already enrolled
        """
        enrollment = Enrollment(tenant_id=tenant_id, user_id=user_id, course_id=course_id)

        result = await self.session.aexecute(
            self._insert_enrollment,
            [
                enrollment.user_id,
                enrollment.course_id,
                enrollment.id,
                enrollment.tenant_id,
                enrollment.enrolled_at,
                enrollment.completed_at,
                enrollment.progress,
            ],
        )
        if not result.was_applied:
            raise AlreadyEnrolledError

        logger.info("user_enrolled", user_id=str(user_id), course_id=str(course_id))
        return enrollment

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> Enrollment | None:
        """Get enrollment by user and course."""
        result = await self.session.aexecute(self._get_enrollment, [user_id, course_id])
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def is_enrolled(self, user_id: UUID, course_id: UUID) -> bool:
        return await self.get_enrollment(user_id, course_id) is not None

    async def require_tenant_enrollment(
        self, enrollment_id: UUID, tenant_id: UUID
    ) -> Enrollment:
        """Get an enrollment of the given tenant.

        Raises:
            EnrollmentNotFoundError: If it does not exist
            EnrollmentAccessDeniedError: If it belongs to another tenant
        """
        result = await self.session.aexecute(
            self._get_enrollment_by_id, [enrollment_id]
        )
        row = result.one()
        if row is None:
            raise EnrollmentNotFoundError
        enrollment = Enrollment.from_row(row)
        if enrollment.tenant_id != tenant_id:
            raise EnrollmentAccessDeniedError
        return enrollment

    async def list_user_enrollments(self, user_id: UUID) -> list[Enrollment]:
        """All enrollments of a user, newest first."""
        rows = await self.session.aexecute(self._get_user_enrollments, [user_id])
        return sorted(
            (Enrollment.from_row(r) for r in rows),
            key=lambda e: e.enrolled_at,
            reverse=True,
        )

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        """All enrollments of a course."""
        rows = await self.session.aexecute(self._get_course_enrollments, [course_id])
        return [Enrollment.from_row(r) for r in rows]

    async def list_tenant_enrollments(self, tenant_id: UUID) -> list[Enrollment]:
        """All enrollments in a tenant."""
        rows = await self.session.aexecute(self._get_tenant_enrollments, [tenant_id])
        return [Enrollment.from_row(r) for r in rows]

    async def _save_enrollment(self, enrollment: Enrollment) -> None:
        await self.session.aexecute(
            self._update_enrollment,
            [
                enrollment.progress,
                enrollment.completed_at,
                enrollment.user_id,
                enrollment.course_id,
            ],
        )

    async def update_enrollment(
        self, enrollment: Enrollment, data: UpdateEnrollmentRequest
    ) -> Enrollment:
        """Set progress and/or completion explicitly."""
        if data.progress is not None:
            enrollment.progress = data.progress
        if data.completed_at is not None:
            enrollment.completed_at = data.completed_at
        await self._save_enrollment(enrollment)
        logger.info(
            "enrollment_updated",
            enrollment_id=str(enrollment.id),
            progress=enrollment.progress,
        )
        return enrollment

    # ==========================================================================
    # Lesson Progress Operations
    # ==========================================================================

    async def get_lesson_progress(
        self, user_id: UUID, lesson_id: UUID
    ) -> LessonProgress | None:
        """Get a user's completion record for a lesson."""
        result = await self.session.aexecute(
            self._get_lesson_progress, [user_id, lesson_id]
        )
        row = result.one()
        return LessonProgress.from_row(row) if row else None

    async def completed_lesson_ids(self, user_id: UUID, course_id: UUID) -> set[UUID]:
        """Ids of the lessons a user completed in a course."""
        rows = await self.session.aexecute(
            self._get_user_course_progress, [user_id, course_id]
        )
        return {r.lesson_id for r in rows if r.completed}

    def check_lesson_chain(
        self,
        lesson: Lesson,
        module_id: UUID | None = None,
        course_id: UUID | None = None,
    ) -> None:
        """Verify the lesson sits in the given module and course.

        Raises:
            LessonMismatchError: On mismatch
        """
        if module_id is not None and lesson.module_id != module_id:
            raise LessonMismatchError
        if course_id is not None and lesson.course_id != course_id:
            raise LessonMismatchError("Module does not belong to this course")

    async def complete_lesson(
        self, user_id: UUID, lesson: Lesson
    ) -> tuple[LessonProgress, bool]:
        """Mark a lesson complete and recalculate the course progress.

        Idempotent: an existing record is returned unchanged.

        Returns:
            (record, created)

        Raises:
            NotEnrolledError: If the user is not enrolled in the course
        """
        if not await self.is_enrolled(user_id, lesson.course_id):
            raise NotEnrolledError

        existing = await self.get_lesson_progress(user_id, lesson.id)
        if existing is not None and existing.completed:
            return existing, False

        record = LessonProgress(
            tenant_id=lesson.tenant_id,
            user_id=user_id,
            lesson_id=lesson.id,
            module_id=lesson.module_id,
            course_id=lesson.course_id,
        )
        await self.session.aexecute(
            self._insert_lesson_progress,
            [
                record.user_id,
                record.lesson_id,
                record.module_id,
                record.course_id,
                record.tenant_id,
                record.completed,
                record.completed_at,
            ],
        )
        logger.info(
            "lesson_completed",
            user_id=str(user_id),
            lesson_id=str(lesson.id),
        )

        await self.recalculate_course_progress(user_id, lesson.course_id)
        return record, True

    # ==========================================================================
    # Course Progress
    # ==========================================================================

    async def recalculate_course_progress(
        self, user_id: UUID, course_id: UUID
    ) -> ProgressUpdate | None:
        """Recompute an enrollment's progress from completed lessons.

        Returns:
            The change, or None when the user is not enrolled
        """
        enrollment = await self.get_enrollment(user_id, course_id)
        if enrollment is None:
            return None

        lessons = await self.lesson_service.list_course_lessons(course_id)
        completed = await self.completed_lesson_ids(user_id, course_id)

        old = enrollment.progress
        enrollment.progress = course_progress(lessons, completed)
        if enrollment.progress >= COMPLETE_PERCENT:
            enrollment.completed_at = enrollment.completed_at or utcnow()
        else:
            enrollment.completed_at = None
        await self._save_enrollment(enrollment)

        logger.debug(
            "course_progress_recalculated",
            user_id=str(user_id),
            course_id=str(course_id),
            old_progress=old,
            new_progress=enrollment.progress,
        )
        return ProgressUpdate(
            user_id=user_id,
            course_id=course_id,
            old_progress=old,
            new_progress=enrollment.progress,
        )

    async def recalculate(
        self,
        tenant_id: UUID,
        user_id: UUID | None = None,
        course_id: UUID | None = None,
    ) -> list[ProgressUpdate]:
        """Recalculate for user+course, a course, a user or the whole tenant."""
        if user_id is not None and course_id is not None:
            targets = [(user_id, course_id)]
        elif course_id is not None:
            targets = [
                (e.user_id, e.course_id)
                for e in await self.list_course_enrollments(course_id)
            ]
        elif user_id is not None:
            targets = [
                (e.user_id, e.course_id)
                for e in await self.list_user_enrollments(user_id)
                if e.tenant_id == tenant_id
            ]
        else:
            targets = [
                (e.user_id, e.course_id)
                for e in await self.list_tenant_enrollments(tenant_id)
            ]

        updates = []
        for target_user, target_course in targets:
            update = await self.recalculate_course_progress(target_user, target_course)
            if update is not None:
                updates.append(update)

        logger.info(
            "progress_recalculated",
            tenant_id=str(tenant_id),
            scope_user=str(user_id) if user_id else None,
            scope_course=str(course_id) if course_id else None,
            updated=len(updates),
        )
        return updates

    async def get_course_progress(
        self, user_id: UUID, course: Course
    ) -> CourseProgressResponse:
        """Modules with lessons marked completed, plus the enrollment progress."""
        enrollment = await self.get_enrollment(user_id, course.id)
        completed = await self.completed_lesson_ids(user_id, course.id)

        modules = []
        for module in await self.module_service.list_course_modules(course.id):
            lessons = await self.lesson_service.list_module_lessons(module.id)
            modules.append(
                ModuleWithProgress(
                    **ModuleResponse.model_validate(module).model_dump(),
                    lessons=[
                        LessonWithProgress(
                            **LessonResponse.model_validate(lesson).model_dump(),
                            completed=lesson.id in completed,
                        )
                        for lesson in lessons
                    ],
                )
            )

        return CourseProgressResponse(
            course_id=course.id,
            progress=enrollment.progress if enrollment else 0,
            completed_at=enrollment.completed_at if enrollment else None,
            modules=modules,
        )

    async def get_admin_course_progress(
        self, course: Course
    ) -> list[StudentCourseProgress]:
        """Per enrolled student, per module completion percentages."""
        modules = await self.module_service.list_course_modules(course.id)
        lessons_by_module = {
            m.id: await self.lesson_service.list_module_lessons(m.id) for m in modules
        }

        completed_by_user: dict[UUID, set[UUID]] = {}
        rows = await self.session.aexecute(self._get_course_progress, [course.id])
        for row in rows:
            if row.completed:
                completed_by_user.setdefault(row.user_id, set()).add(row.lesson_id)

        report = []
        for enrollment in await self.list_course_enrollments(course.id):
            done = completed_by_user.get(enrollment.user_id, set())
            summaries = []
            for module in modules:
                lessons = lessons_by_module[module.id]
                finished = sum(1 for lesson in lessons if lesson.id in done)
                summaries.append(
                    ModuleProgressSummary(
                        module_id=module.id,
                        title=module.title,
                        completed_lessons=finished,
                        total_lessons=len(lessons),
                        progress=percent(finished, len(lessons)),
                    )
                )
            report.append(
                StudentCourseProgress(
                    user_id=enrollment.user_id,
                    progress=enrollment.progress,
                    completed_at=enrollment.completed_at,
                    modules=summaries,
                )
            )
        return report

    def to_response(self, enrollment: Enrollment) -> EnrollmentResponse:
        """Convert entity to response model."""
        return EnrollmentResponse.model_validate(enrollment)
