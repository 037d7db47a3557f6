"""Tests for course progress calculation and lesson completion."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.courses.models import Lesson
from src.progress.models import Enrollment
from src.progress.service import (
    AlreadyEnrolledError,
    LessonMismatchError,
    NotEnrolledError,
    ProgressService,
    course_progress,
    required_lessons,
)


def lessons(tenant_id, course_id, *required: bool) -> list[Lesson]:
    module_id = uuid4()
    return [
        Lesson(
            tenant_id=tenant_id,
            course_id=course_id,
            module_id=module_id,
            title=f"Lesson {i}",
            position=i,
            is_required=flag,
        )
        for i, flag in enumerate(required)
    ]


@pytest.fixture
def course_id():
    return uuid4()


@pytest.fixture
def lesson_service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def progress_service(mock_session, lesson_service) -> ProgressService:
    return ProgressService(mock_session, "learnhub", MagicMock(), lesson_service)


class TestCourseProgress:
    def test_no_lessons(self) -> None:
        assert course_progress([], set()) == 0

    def test_only_required_lessons_count(self, tenant_id, course_id) -> None:
        items = lessons(tenant_id, course_id, True, True, False)
        assert [lesson.is_required for lesson in required_lessons(items)] == [True, True]
        assert course_progress(items, {items[0].id, items[2].id}) == 50

    def test_all_optional_counts_every_lesson(self, tenant_id, course_id) -> None:
        items = lessons(tenant_id, course_id, False, False, False)
        assert required_lessons(items) == items
        assert course_progress(items, {items[0].id}) == 33

    def test_rounds_half_up(self, tenant_id, course_id) -> None:
        items = lessons(tenant_id, course_id, *([True] * 8))
        assert course_progress(items, {items[0].id}) == 13

    def test_complete(self, tenant_id, course_id) -> None:
        items = lessons(tenant_id, course_id, True, True)
        assert course_progress(items, {lesson.id for lesson in items}) == 100


class TestEnrollment:
    @pytest.mark.asyncio
    async def test_enroll_twice(
        self, progress_service, mock_session, result_factory, tenant_id, course_id
    ) -> None:
        mock_session.aexecute.return_value = result_factory(applied=False)
        with pytest.raises(AlreadyEnrolledError):
            await progress_service.enroll_user(tenant_id, uuid4(), course_id)

    @pytest.mark.asyncio
    async def test_enroll(self, progress_service, tenant_id, course_id) -> None:
        enrollment = await progress_service.enroll_user(tenant_id, uuid4(), course_id)
        assert enrollment.progress == 0
        assert enrollment.completed_at is None


class TestCompleteLesson:
    @pytest.mark.asyncio
    async def test_requires_enrollment(
        self, progress_service, tenant_id, course_id
    ) -> None:
        (lesson,) = lessons(tenant_id, course_id, True)
        progress_service.is_enrolled = AsyncMock(return_value=False)

        with pytest.raises(NotEnrolledError):
            await progress_service.complete_lesson(uuid4(), lesson)

    @pytest.mark.asyncio
    async def test_completes_and_recalculates(
        self, progress_service, lesson_service, tenant_id, course_id
    ) -> None:
        user_id = uuid4()
        items = lessons(tenant_id, course_id, True, True)
        enrollment = Enrollment(tenant_id=tenant_id, user_id=user_id, course_id=course_id)

        progress_service.is_enrolled = AsyncMock(return_value=True)
        progress_service.get_lesson_progress = AsyncMock(return_value=None)
        progress_service.get_enrollment = AsyncMock(return_value=enrollment)
        progress_service.completed_lesson_ids = AsyncMock(
            return_value={items[0].id}
        )
        lesson_service.list_course_lessons = AsyncMock(return_value=items)

        record, created = await progress_service.complete_lesson(user_id, items[0])

        assert created is True
        assert record.lesson_id == items[0].id
        assert enrollment.progress == 50
        assert enrollment.completed_at is None

    @pytest.mark.asyncio
    async def test_idempotent(self, progress_service, tenant_id, course_id) -> None:
        (lesson,) = lessons(tenant_id, course_id, True)
        existing = SimpleNamespace(completed=True, lesson_id=lesson.id)
        progress_service.is_enrolled = AsyncMock(return_value=True)
        progress_service.get_lesson_progress = AsyncMock(return_value=existing)
        progress_service.recalculate_course_progress = AsyncMock()

        record, created = await progress_service.complete_lesson(uuid4(), lesson)

        assert record is existing
        assert created is False
        progress_service.recalculate_course_progress.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_full_course_sets_completed_at(
        self, progress_service, lesson_service, tenant_id, course_id
    ) -> None:
        user_id = uuid4()
        items = lessons(tenant_id, course_id, True)
        enrollment = Enrollment(tenant_id=tenant_id, user_id=user_id, course_id=course_id)
        progress_service.get_enrollment = AsyncMock(return_value=enrollment)
        progress_service.completed_lesson_ids = AsyncMock(return_value={items[0].id})
        lesson_service.list_course_lessons = AsyncMock(return_value=items)

        update = await progress_service.recalculate_course_progress(user_id, course_id)

        assert update.old_progress == 0
        assert update.new_progress == 100
        assert enrollment.completed_at is not None


class TestLessonChain:
    def test_mismatch(self, progress_service, tenant_id, course_id) -> None:
        (lesson,) = lessons(tenant_id, course_id, True)
        with pytest.raises(LessonMismatchError):
            progress_service.check_lesson_chain(lesson, module_id=uuid4())
        with pytest.raises(LessonMismatchError):
            progress_service.check_lesson_chain(lesson, course_id=uuid4())
        progress_service.check_lesson_chain(
            lesson, module_id=lesson.module_id, course_id=course_id
        )
