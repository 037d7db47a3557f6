"""Tests for ExamService."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.core.datetime_utils import utcnow
from src.exams.models import Exam, ExamAttempt, Question
from src.exams.schemas import AddQuestionRequest, UpdateAttemptRequest
from src.exams.service import (
    AttemptSubmittedError,
    ExamAccessDeniedError,
    ExamClosedError,
    ExamNotFoundError,
    ExamService,
    InvalidAnswersError,
)


@pytest.fixture
def exam_service(mock_session) -> ExamService:
    return ExamService(mock_session, "learnhub")


@pytest.fixture
def exam(tenant_id) -> Exam:
    return Exam(tenant_id=tenant_id, course_id=uuid4(), title="Midterm")


@pytest.fixture
def questions(exam) -> list[Question]:
    return [
        Question(exam_id=exam.id, tenant_id=exam.tenant_id, text=f"Q{i}", position=i)
        for i in range(2)
    ]


@pytest.fixture
def attempt(exam) -> ExamAttempt:
    return ExamAttempt(tenant_id=exam.tenant_id, user_id=uuid4(), exam_id=exam.id)


class TestExams:
    @pytest.mark.asyncio
    async def test_require_tenant_exam_missing(self, exam_service, tenant_id) -> None:
        with pytest.raises(ExamNotFoundError):
            await exam_service.require_tenant_exam(uuid4(), tenant_id)

    @pytest.mark.asyncio
    async def test_require_tenant_exam_other_tenant(self, exam_service, exam) -> None:
        exam_service.get_exam = AsyncMock(return_value=exam)
        with pytest.raises(ExamAccessDeniedError):
            await exam_service.require_tenant_exam(exam.id, uuid4())

    @pytest.mark.asyncio
    async def test_question_position_defaults_to_count(
        self, exam_service, exam, questions
    ) -> None:
        exam_service.list_exam_questions = AsyncMock(return_value=questions)

        question = await exam_service.add_question(exam, AddQuestionRequest(text="Why?"))

        assert question.position == 2
        assert question.exam_id == exam.id


class TestAttempts:
    @pytest.mark.asyncio
    async def test_closed_exam(self, exam_service, exam) -> None:
        exam.accepting_responses = False
        with pytest.raises(ExamClosedError):
            await exam_service.start_attempt(uuid4(), exam)

    @pytest.mark.asyncio
    async def test_start(self, exam_service, exam, mock_session) -> None:
        user_id = uuid4()
        attempt = await exam_service.start_attempt(user_id, exam)

        assert attempt.user_id == user_id
        assert attempt.tenant_id == exam.tenant_id
        assert attempt.is_completed is False
        mock_session.aexecute.assert_awaited()

    @pytest.mark.asyncio
    async def test_save_answers_without_submitting(
        self, exam_service, attempt, questions
    ) -> None:
        exam_service.list_exam_questions = AsyncMock(return_value=questions)
        data = UpdateAttemptRequest(answers={questions[0].id: "Because."})

        saved, submitted = await exam_service.update_attempt(attempt, data)

        assert submitted is False
        assert saved.answers == {str(questions[0].id): "Because."}
        assert saved.completed_at is None

    @pytest.mark.asyncio
    async def test_submit_once(self, exam_service, attempt) -> None:
        _, submitted = await exam_service.update_attempt(
            attempt, UpdateAttemptRequest(completed=True)
        )
        assert submitted is True
        first_completed_at = attempt.completed_at

        _, again = await exam_service.update_attempt(
            attempt, UpdateAttemptRequest(completed=True)
        )
        assert again is False
        assert attempt.completed_at == first_completed_at

    @pytest.mark.asyncio
    async def test_answers_frozen_after_submit(self, exam_service, attempt) -> None:
        attempt.completed_at = utcnow()
        with pytest.raises(AttemptSubmittedError):
            await exam_service.update_attempt(
                attempt, UpdateAttemptRequest(answers={uuid4(): "late"})
            )

    @pytest.mark.asyncio
    async def test_answer_for_foreign_question(
        self, exam_service, attempt, questions
    ) -> None:
        exam_service.list_exam_questions = AsyncMock(return_value=questions)
        with pytest.raises(InvalidAnswersError):
            await exam_service.update_attempt(
                attempt, UpdateAttemptRequest(answers={uuid4(): "?"})
            )

    @pytest.mark.asyncio
    async def test_grade(self, exam_service, attempt) -> None:
        graded = await exam_service.grade_attempt(attempt, "Good work")
        assert graded.feedback == "Good work"
        assert graded.is_reviewed is True
