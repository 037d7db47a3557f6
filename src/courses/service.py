"""Course management service layer.

Business logic for:
- Course CRUD with cached per-tenant listings
- Module CRUD, ordered by position
- Lesson CRUD, including quiz payload validation
- Keeping a course's module and lesson counts in step
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.cache import ResourceCache
from src.core.datetime_utils import utcnow
from src.core.redis import cache_key
from src.courses.models import ContentType, Course, Lesson, Module
from src.courses.schemas import (
    CourseResponse,
    CreateCourseRequest,
    CreateLessonRequest,
    CreateModuleRequest,
    LessonResponse,
    ModuleResponse,
    UpdateCourseRequest,
    UpdateLessonRequest,
    UpdateModuleRequest,
)
from src.quiz.payload import QuizPayload, check_gradable, decode_quiz_payload


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ModuleNotFoundError(CourseError):
    """Module not found."""

    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class LessonNotFoundError(CourseError):
    """Lesson not found."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class CourseAccessDeniedError(CourseError):
    """Resource belongs to another tenant."""

    def __init__(self, message: str = "Access denied to this course"):
        super().__init__(message, "access_denied")


class EnrollmentRequiredError(CourseError):
    """Student is not enrolled in a course that requires it."""

    def __init__(self, message: str = "Enrollment required for this course"):
        super().__init__(message, "enrollment_required")


class InvalidQuizError(CourseError):
    """Quiz lesson without a gradable payload."""

    def __init__(self, message: str = "Invalid quiz data"):
        super().__init__(message, "invalid_quiz")


class NotAQuizError(CourseError):
    """Quiz operation on a lesson that is not a quiz."""

    def __init__(self, message: str = "Lesson is not a quiz"):
        super().__init__(message, "not_a_quiz")


def course_list_key(tenant_id: UUID) -> str:
    """Cache key of a tenant's course listing."""
    return cache_key("courses", "tenant", tenant_id)


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for course management."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        cache: ResourceCache | None = None,
    ):
        """Initialize with Cassandra session and optional listing cache."""
        self.session = session
        self.keyspace = keyspace
        self.cache = cache or ResourceCache(None)
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._list_by_tenant = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE tenant_id = ?"
        )
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses (
                id, tenant_id, title, description, category, difficulty,
                duration, module_count, lesson_count, thumbnail, instructor_id,
                is_enrollment_required, created_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET title = ?, description = ?, category = ?, difficulty = ?,
                duration = ?, thumbnail = ?, instructor_id = ?,
                is_enrollment_required = ?, updated_at = ?
            WHERE id = ?
        """)
        self._update_counts = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET module_count = ?, lesson_count = ?
            WHERE id = ?
        """)
        self._delete_course = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._module_ids_by_course = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.modules WHERE course_id = ?"
        )
        self._lesson_ids_by_course = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.lessons WHERE course_id = ?"
        )
        self._delete_module = self.session.prepare(
            f"DELETE FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._delete_lesson = self.session.prepare(
            f"DELETE FROM {self.keyspace}.lessons WHERE id = ?"
        )

    async def create_course(
        self,
        tenant_id: UUID,
        data: CreateCourseRequest,
        creator_id: UUID,
    ) -> Course:
        """Create a new course in a tenant."""
        course = Course(
            tenant_id=tenant_id,
            title=data.title,
            description=data.description,
            category=data.category,
            difficulty=data.difficulty.value,
            duration=data.duration,
            thumbnail=data.thumbnail,
            instructor_id=data.instructor_id,
            is_enrollment_required=data.is_enrollment_required,
            created_by=creator_id,
        )

        await self.session.aexecute(
            self._insert_course,
            [
                course.id,
                course.tenant_id,
                course.title,
                course.description,
                course.category,
                course.difficulty,
                course.duration,
                course.module_count,
                course.lesson_count,
                course.thumbnail,
                course.instructor_id,
                course.is_enrollment_required,
                course.created_by,
                course.created_at,
                course.updated_at,
            ],
        )
        await self.cache.invalidate(course_list_key(tenant_id))

        logger.info("course_created", course_id=str(course.id), title=course.title)
        return course

    async def get_course(self, course_id: UUID) -> Course | None:
        """Get course by ID."""
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_tenant_course(self, course_id: UUID, tenant_id: UUID) -> Course:
        """Get a course of the given tenant.

        Raises:
            CourseNotFoundError: If the course does not exist
            CourseAccessDeniedError: If it belongs to another tenant
        """
        course = await self.get_course(course_id)
        if course is None:
            raise CourseNotFoundError
        if course.tenant_id != tenant_id:
            raise CourseAccessDeniedError
        return course

    async def list_tenant_courses(self, tenant_id: UUID) -> list[CourseResponse]:
        """All courses of a tenant, newest first. Served from cache when warm."""

        async def load() -> list[dict]:
            rows = await self.session.aexecute(self._list_by_tenant, [tenant_id])
            courses = sorted(
                (Course.from_row(r) for r in rows),
                key=lambda c: c.created_at,
                reverse=True,
            )
            return [self.to_response(c).model_dump(mode="json") for c in courses]

        cached = await self.cache.get_or_load(course_list_key(tenant_id), load)
        return [CourseResponse.model_validate(item) for item in cached]

    async def update_course(self, course: Course, data: UpdateCourseRequest) -> Course:
        """Update course fields that are set."""
        if data.title is not None:
            course.title = data.title.strip()
        if data.description is not None:
            course.description = data.description
        if data.category is not None:
            course.category = data.category
        if data.difficulty is not None:
            course.difficulty = data.difficulty.value
        if data.duration is not None:
            course.duration = data.duration
        if data.thumbnail is not None:
            course.thumbnail = data.thumbnail
        if data.instructor_id is not None:
            course.instructor_id = data.instructor_id
        if data.is_enrollment_required is not None:
            course.is_enrollment_required = data.is_enrollment_required

        course.updated_at = utcnow()

        await self.session.aexecute(
            self._update_course,
            [
                course.title,
                course.description,
                course.category,
                course.difficulty,
                course.duration,
                course.thumbnail,
                course.instructor_id,
                course.is_enrollment_required,
                course.updated_at,
                course.id,
            ],
        )
        await self.cache.invalidate(course_list_key(course.tenant_id))

        logger.info("course_updated", course_id=str(course.id))
        return course

    async def delete_course(self, course: Course) -> None:
        """Delete a course with its modules and lessons."""
        lesson_rows = await self.session.aexecute(
            self._lesson_ids_by_course, [course.id]
        )
        for row in lesson_rows:
            await self.session.aexecute(self._delete_lesson, [row.id])

        module_rows = await self.session.aexecute(
            self._module_ids_by_course, [course.id]
        )
        for row in module_rows:
            await self.session.aexecute(self._delete_module, [row.id])

        await self.session.aexecute(self._delete_course, [course.id])
        await self.cache.invalidate(course_list_key(course.tenant_id))

        logger.info("course_deleted", course_id=str(course.id))

    async def refresh_counts(self, course_id: UUID) -> None:
        """Recount the course's modules and lessons."""
        module_rows = await self.session.aexecute(
            self._module_ids_by_course, [course_id]
        )
        lesson_rows = await self.session.aexecute(
            self._lesson_ids_by_course, [course_id]
        )
        await self.session.aexecute(
            self._update_counts,
            [len(list(module_rows)), len(list(lesson_rows)), course_id],
        )
        course = await self.get_course(course_id)
        if course is not None:
            await self.cache.invalidate(course_list_key(course.tenant_id))

    def to_response(self, course: Course) -> CourseResponse:
        """Convert entity to response model."""
        return CourseResponse.model_validate(course)


# ==============================================================================
# Module Service
# ==============================================================================


class ModuleService:
    """Service for module management."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: CourseService,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._list_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE course_id = ?"
        )
        self._insert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules (
                id, tenant_id, course_id, title, description, position, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_module = self.session.prepare(f"""
            UPDATE {self.keyspace}.modules
            SET title = ?, description = ?, position = ?
            WHERE id = ?
        """)
        self._delete_module = self.session.prepare(
            f"DELETE FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._lesson_ids_by_module = self.session.prepare(
            f"SELECT id FROM {self.keyspace}.lessons WHERE module_id = ?"
        )
        self._delete_lesson = self.session.prepare(
            f"DELETE FROM {self.keyspace}.lessons WHERE id = ?"
        )

    async def create_module(self, course: Course, data: CreateModuleRequest) -> Module:
        """Create a module in a course. Position defaults to the end."""
        position = data.position
        if position is None:
            position = len(await self.list_course_modules(course.id))

        module = Module(
            tenant_id=course.tenant_id,
            course_id=course.id,
            title=data.title,
            description=data.description,
            position=position,
        )
        await self.session.aexecute(
            self._insert_module,
            [
                module.id,
                module.tenant_id,
                module.course_id,
                module.title,
                module.description,
                module.position,
                module.created_at,
            ],
        )
        await self.course_service.refresh_counts(course.id)

        logger.info(
            "module_created", module_id=str(module.id), course_id=str(course.id)
        )
        return module

    async def get_module(self, module_id: UUID) -> Module | None:
        """Get module by ID."""
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return Module.from_row(row) if row else None

    async def require_tenant_module(self, module_id: UUID, tenant_id: UUID) -> Module:
        """Get a module of the given tenant.

        Raises:
            ModuleNotFoundError: If the module does not exist
            CourseAccessDeniedError: If it belongs to another tenant
        """
        module = await self.get_module(module_id)
        if module is None:
            raise ModuleNotFoundError
        if module.tenant_id != tenant_id:
            raise CourseAccessDeniedError("Access denied to this module")
        return module

    async def list_course_modules(self, course_id: UUID) -> list[Module]:
        """Modules of a course ordered by position."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return sorted(
            (Module.from_row(r) for r in rows),
            key=lambda m: (m.position, m.created_at),
        )

    async def update_module(self, module: Module, data: UpdateModuleRequest) -> Module:
        """Update module fields that are set."""
        if data.title is not None:
            module.title = data.title.strip()
        if data.description is not None:
            module.description = data.description
        if data.position is not None:
            module.position = data.position

        await self.session.aexecute(
            self._update_module,
            [module.title, module.description, module.position, module.id],
        )
        logger.info("module_updated", module_id=str(module.id))
        return module

    async def delete_module(self, module: Module) -> None:
        """Delete a module and its lessons."""
        rows = await self.session.aexecute(self._lesson_ids_by_module, [module.id])
        for row in rows:
            await self.session.aexecute(self._delete_lesson, [row.id])
        await self.session.aexecute(self._delete_module, [module.id])
        await self.course_service.refresh_counts(module.course_id)

        logger.info("module_deleted", module_id=str(module.id))

    def to_response(self, module: Module) -> ModuleResponse:
        """Convert entity to response model."""
        return ModuleResponse.model_validate(module)


# ==============================================================================
# Lesson Service
# ==============================================================================


class LessonService:
    """Service for lesson management."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: CourseService,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_lesson = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lessons WHERE id = ?"
        )
        self._list_by_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lessons WHERE module_id = ?"
        )
        self._list_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lessons WHERE course_id = ?"
        )
        self._insert_lesson = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lessons (
                id, tenant_id, course_id, module_id, title, content,
                content_type, position, duration, is_required, quiz_data,
                created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_lesson = self.session.prepare(f"""
            UPDATE {self.keyspace}.lessons
            SET title = ?, content = ?, content_type = ?, position = ?,
                duration = ?, is_required = ?, quiz_data = ?
            WHERE id = ?
        """)
        self._delete_lesson = self.session.prepare(
            f"DELETE FROM {self.keyspace}.lessons WHERE id = ?"
        )

    async def create_lesson(self, module: Module, data: CreateLessonRequest) -> Lesson:
        """Create a lesson in a module. Position defaults to the end."""
        position = data.position
        if position is None:
            position = len(await self.list_module_lessons(module.id))

        lesson = Lesson(
            tenant_id=module.tenant_id,
            course_id=module.course_id,
            module_id=module.id,
            title=data.title,
            content=data.content,
            content_type=data.content_type.value,
            position=position,
            duration=data.duration,
            is_required=data.is_required,
            quiz_data=data.quiz_data,
        )
        await self._save(lesson, insert=True)
        await self.course_service.refresh_counts(module.course_id)

        logger.info(
            "lesson_created",
            lesson_id=str(lesson.id),
            module_id=str(module.id),
            content_type=lesson.content_type,
        )
        return lesson

    async def _save(self, lesson: Lesson, *, insert: bool) -> None:
        if insert:
            await self.session.aexecute(
                self._insert_lesson,
                [
                    lesson.id,
                    lesson.tenant_id,
                    lesson.course_id,
                    lesson.module_id,
                    lesson.title,
                    lesson.content,
                    lesson.content_type,
                    lesson.position,
                    lesson.duration,
                    lesson.is_required,
                    lesson.quiz_data,
                    lesson.created_at,
                ],
            )
            return
        await self.session.aexecute(
            self._update_lesson,
            [
                lesson.title,
                lesson.content,
                lesson.content_type,
                lesson.position,
                lesson.duration,
                lesson.is_required,
                lesson.quiz_data,
                lesson.id,
            ],
        )

    async def get_lesson(self, lesson_id: UUID) -> Lesson | None:
        """Get lesson by ID."""
        result = await self.session.aexecute(self._get_lesson, [lesson_id])
        row = result.one()
        return Lesson.from_row(row) if row else None

    async def require_tenant_lesson(self, lesson_id: UUID, tenant_id: UUID) -> Lesson:
        """Get a lesson of the given tenant.

        Raises:
            LessonNotFoundError: If the lesson does not exist
            CourseAccessDeniedError: If it belongs to another tenant
        """
        lesson = await self.get_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError
        if lesson.tenant_id != tenant_id:
            raise CourseAccessDeniedError("Access denied to this lesson")
        return lesson

    async def list_module_lessons(self, module_id: UUID) -> list[Lesson]:
        """Lessons of a module ordered by position."""
        rows = await self.session.aexecute(self._list_by_module, [module_id])
        return sorted(
            (Lesson.from_row(r) for r in rows),
            key=lambda lesson: (lesson.position, lesson.created_at),
        )

    async def list_course_lessons(self, course_id: UUID) -> list[Lesson]:
        """Every lesson of a course (unordered across modules)."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return [Lesson.from_row(r) for r in rows]

    async def update_lesson(self, lesson: Lesson, data: UpdateLessonRequest) -> Lesson:
        """Update lesson fields that are set.

        Raises:
            InvalidQuizError: If the lesson ends up a quiz without a gradable
                payload
        """
        if data.title is not None:
            lesson.title = data.title.strip()
        if data.content is not None:
            lesson.content = data.content
        if data.content_type is not None:
            lesson.content_type = data.content_type.value
        if data.position is not None:
            lesson.position = data.position
        if data.duration is not None:
            lesson.duration = data.duration
        if data.is_required is not None:
            lesson.is_required = data.is_required
        if data.quiz_data is not None:
            lesson.quiz_data = data.quiz_data

        if lesson.is_quiz:
            try:
                check_gradable(decode_quiz_payload(lesson.quiz_data))
            except ValueError as e:
                raise InvalidQuizError(str(e)) from e
        else:
            lesson.quiz_data = None

        await self._save(lesson, insert=False)
        logger.info("lesson_updated", lesson_id=str(lesson.id))
        return lesson

    async def delete_lesson(self, lesson: Lesson) -> None:
        """Delete a lesson."""
        await self.session.aexecute(self._delete_lesson, [lesson.id])
        await self.course_service.refresh_counts(lesson.course_id)
        logger.info("lesson_deleted", lesson_id=str(lesson.id))

    def get_quiz(self, lesson: Lesson) -> QuizPayload:
        """Decoded quiz of a quiz lesson.

        Raises:
            NotAQuizError: If the lesson is not a quiz
        """
        if lesson.content_type != ContentType.QUIZ.value:
            raise NotAQuizError
        return decode_quiz_payload(lesson.quiz_data)

    def to_response(self, lesson: Lesson) -> LessonResponse:
        """Convert entity to response model."""
        return LessonResponse.model_validate(lesson)
