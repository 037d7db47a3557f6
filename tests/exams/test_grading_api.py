"""Tests for the grading endpoint."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.activity.models import ActivityType
from src.exams.models import ExamAttempt
from src.exams.service import ExamService


@pytest.fixture
def attempt(tenant_id) -> ExamAttempt:
    return ExamAttempt(
        tenant_id=tenant_id,
        user_id=uuid4(),
        exam_id=uuid4(),
        answers={"1": "Photosynthesis"},
    )


@pytest.fixture
def activity():
    from src.activity.dependencies import set_activity_writer_getter

    writer = MagicMock()
    set_activity_writer_getter(lambda: writer)
    return writer


@pytest.fixture
def exam_service(mock_session, attempt) -> ExamService:
    from src.exams.dependencies import set_exam_service_getter

    service = ExamService(mock_session, "learnhub")
    service.get_attempt = AsyncMock(return_value=attempt)
    set_exam_service_getter(lambda: service)
    return service


class TestGradeAttempt:
    def test_records_feedback(
        self,
        client: TestClient,
        exam_service,
        activity,
        attempt,
        mock_session,
        admin_headers,
    ) -> None:
        response = client.put(
            f"/api/grading/attempts/{attempt.id}",
            json={"feedback": "Well argued"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["feedback"] == "Well argued"
        assert body["reviewed_at"] is not None
        assert body["answers"] == {"1": "Photosynthesis"}

        saved = mock_session.aexecute.await_args.args[1]
        assert saved == ["Well argued", attempt.reviewed_at, attempt.id]
        assert activity.emit.call_args.args[2] == ActivityType.EXAM_GRADED

    def test_attempt_of_other_tenant(
        self, client: TestClient, exam_service, activity, attempt, admin_headers
    ) -> None:
        attempt.tenant_id = uuid4()

        response = client.put(
            f"/api/grading/attempts/{attempt.id}",
            json={"feedback": "Well argued"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert attempt.reviewed_at is None
        activity.emit.assert_not_called()

    def test_missing_attempt(
        self, client: TestClient, exam_service, activity, admin_headers
    ) -> None:
        exam_service.get_attempt.return_value = None

        response = client.put(
            f"/api/grading/attempts/{uuid4()}",
            json={"feedback": "Well argued"},
            headers=admin_headers,
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Exam attempt not found"

    def test_students_cannot_grade(
        self, client: TestClient, exam_service, activity, attempt, student_headers
    ) -> None:
        response = client.put(
            f"/api/grading/attempts/{attempt.id}",
            json={"feedback": "Looks fine to me"},
            headers=student_headers,
        )

        assert response.status_code == 403
        exam_service.get_attempt.assert_not_awaited()

    def test_feedback_required(
        self, client: TestClient, exam_service, activity, attempt, admin_headers
    ) -> None:
        response = client.put(
            f"/api/grading/attempts/{attempt.id}",
            json={"feedback": ""},
            headers=admin_headers,
        )

        assert response.status_code == 422
