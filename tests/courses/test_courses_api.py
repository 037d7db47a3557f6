"""Tests for course and lesson endpoints."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.courses.models import ContentType, Course, Lesson
from src.courses.schemas import CourseResponse
from src.courses.service import CourseService, LessonService


@pytest.fixture
def courses(tenant_id) -> SimpleNamespace:
    return SimpleNamespace(
        open=Course(tenant_id=tenant_id, title="Open", is_enrollment_required=False),
        enrolled=Course(tenant_id=tenant_id, title="Enrolled"),
        locked=Course(tenant_id=tenant_id, title="Locked"),
    )


@pytest.fixture
def services(courses):
    from src.courses.dependencies import (
        set_course_service_getter,
        set_lesson_service_getter,
        set_module_service_getter,
    )
    from src.progress.dependencies import set_progress_service_getter

    ns = SimpleNamespace(
        course=MagicMock(),
        module=MagicMock(),
        lesson=MagicMock(),
        progress=MagicMock(),
    )
    ns.course.list_tenant_courses = AsyncMock(
        return_value=[
            CourseResponse.model_validate(c)
            for c in (courses.open, courses.enrolled, courses.locked)
        ]
    )
    ns.course.to_response.side_effect = CourseResponse.model_validate
    ns.progress.list_user_enrollments = AsyncMock(
        return_value=[SimpleNamespace(course_id=courses.enrolled.id)]
    )
    ns.progress.is_enrolled = AsyncMock(return_value=False)

    set_course_service_getter(lambda: ns.course)
    set_module_service_getter(lambda: ns.module)
    set_lesson_service_getter(lambda: ns.lesson)
    set_progress_service_getter(lambda: ns.progress)
    return ns


class TestListCourses:
    def test_student_sees_open_and_enrolled(
        self, client: TestClient, services, courses, student_headers
    ) -> None:
        response = client.get("/api/courses", headers=student_headers)

        assert response.status_code == 200
        titles = {c["title"] for c in response.json()}
        assert titles == {"Open", "Enrolled"}

    def test_admin_sees_every_course(
        self, client: TestClient, services, admin_headers
    ) -> None:
        response = client.get("/api/courses", headers=admin_headers)

        assert {c["title"] for c in response.json()} == {"Open", "Enrolled", "Locked"}
        services.progress.list_user_enrollments.assert_not_called()


class TestCourseAccess:
    def test_enrollment_required(
        self, client: TestClient, services, courses, student_headers
    ) -> None:
        services.course.require_tenant_course = AsyncMock(return_value=courses.locked)

        response = client.get(
            f"/api/courses/{courses.locked.id}", headers=student_headers
        )

        assert response.status_code == 403
        assert response.json()["message"] == "Enrollment required for this course"

    def test_enrolled_student_may_open(
        self, client: TestClient, services, courses, student_headers
    ) -> None:
        services.course.require_tenant_course = AsyncMock(
            return_value=courses.enrolled
        )
        services.progress.is_enrolled.return_value = True

        response = client.get(
            f"/api/courses/{courses.enrolled.id}", headers=student_headers
        )

        assert response.status_code == 200
        assert response.json()["id"] == str(courses.enrolled.id)

    def test_other_tenant_course(
        self, client: TestClient, services, admin_headers
    ) -> None:
        from src.courses.service import CourseAccessDeniedError

        services.course.require_tenant_course = AsyncMock(
            side_effect=CourseAccessDeniedError()
        )

        response = client.get(f"/api/courses/{uuid4()}", headers=admin_headers)

        assert response.status_code == 403

    def test_students_cannot_create(
        self, client: TestClient, services, student_headers
    ) -> None:
        response = client.post(
            "/api/courses", json={"title": "Algebra"}, headers=student_headers
        )

        assert response.status_code == 403


class TestQuizLessonWrites:
    def test_create_rejects_quiz_without_correct_option(
        self, client: TestClient, services, admin_headers
    ) -> None:
        quiz = {
            "questions": [
                {"id": 1, "text": "Pick", "options": [{"id": 1, "text": "a"}]}
            ]
        }

        response = client.post(
            "/api/lessons",
            json={
                "module_id": str(uuid4()),
                "title": "Quiz",
                "content_type": "quiz",
                "quiz_data": quiz,
            },
            headers=admin_headers,
        )

        assert response.status_code == 422
        services.lesson.create_lesson.assert_not_called()

    def test_create_rejects_empty_quiz(
        self, client: TestClient, services, admin_headers
    ) -> None:
        response = client.post(
            "/api/lessons",
            json={
                "module_id": str(uuid4()),
                "title": "Quiz",
                "content_type": "quiz",
                "quiz_data": '{"questions": []}',
            },
            headers=admin_headers,
        )

        assert response.status_code == 422

    def test_switching_to_quiz_needs_payload(
        self, client: TestClient, services, mock_session, admin_headers, tenant_id
    ) -> None:
        from src.courses.dependencies import set_lesson_service_getter

        lesson = Lesson(
            tenant_id=tenant_id,
            course_id=uuid4(),
            module_id=uuid4(),
            title="Reading",
            content_type=ContentType.TEXT.value,
        )
        lesson_service = LessonService(mock_session, "learnhub", MagicMock())
        lesson_service.require_tenant_lesson = AsyncMock(return_value=lesson)
        set_lesson_service_getter(lambda: lesson_service)

        response = client.put(
            f"/api/lessons/{lesson.id}",
            json={"content_type": "quiz"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert response.json()["message"] == "A quiz needs at least one question"
        mock_session.aexecute.assert_not_awaited()


class TestCourseService:
    @pytest.fixture
    def cache(self) -> MagicMock:
        cache = MagicMock()
        cache.invalidate = AsyncMock()
        return cache

    @pytest.fixture
    def course_service(self, mock_session, cache) -> CourseService:
        return CourseService(mock_session, "learnhub", cache=cache)

    @pytest.mark.asyncio
    async def test_mutations_invalidate_listing(
        self, course_service, cache, tenant_id
    ) -> None:
        from src.courses.schemas import CreateCourseRequest, UpdateCourseRequest
        from src.courses.service import course_list_key

        key = course_list_key(tenant_id)

        course = await course_service.create_course(
            tenant_id, CreateCourseRequest(title="Algebra"), uuid4()
        )
        cache.invalidate.assert_awaited_with(key)

        cache.invalidate.reset_mock()
        await course_service.update_course(course, UpdateCourseRequest(title="Alg"))
        cache.invalidate.assert_awaited_with(key)

        cache.invalidate.reset_mock()
        await course_service.delete_course(course)
        cache.invalidate.assert_awaited_with(key)

    @pytest.mark.asyncio
    async def test_refresh_counts(
        self, course_service, mock_session, result_factory, cache, tenant_id
    ) -> None:
        course = Course(tenant_id=tenant_id, title="Algebra")
        course_service.get_course = AsyncMock(return_value=course)
        rows = SimpleNamespace
        mock_session.aexecute.side_effect = [
            result_factory(rows(id=uuid4()), rows(id=uuid4())),  # modules
            result_factory(rows(id=uuid4()), rows(id=uuid4()), rows(id=uuid4())),
            result_factory(),  # count update
        ]

        await course_service.refresh_counts(course.id)

        update_call = mock_session.aexecute.await_args_list[2]
        assert update_call.args[1] == [2, 3, course.id]
        cache.invalidate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lesson_create_and_delete_refresh_counts(
        self, mock_session, tenant_id
    ) -> None:
        from src.courses.models import Module
        from src.courses.schemas import CreateLessonRequest

        course_service = MagicMock()
        course_service.refresh_counts = AsyncMock()
        lesson_service = LessonService(mock_session, "learnhub", course_service)
        module = Module(tenant_id=tenant_id, course_id=uuid4(), title="Basics")

        lesson = await lesson_service.create_lesson(
            module, CreateLessonRequest(module_id=module.id, title="Intro")
        )
        await lesson_service.delete_lesson(lesson)

        assert lesson.position == 0
        assert course_service.refresh_counts.await_count == 2
        course_service.refresh_counts.assert_awaited_with(module.course_id)
