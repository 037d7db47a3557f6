"""Exam service layer.

Business logic for:
- Exam CRUD
- Ordered free-text questions
- Attempts: start, save answers, submit
- Grading: admin feedback on submitted attempts
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.datetime_utils import utcnow
from src.exams.models import Exam, ExamAttempt, Question
from src.exams.schemas import (
    AddQuestionRequest,
    AttemptResponse,
    CreateExamRequest,
    ExamResponse,
    QuestionResponse,
    UpdateAttemptRequest,
    UpdateExamRequest,
    UpdateQuestionRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ExamError(Exception):
    """Base exam error."""

    def __init__(self, message: str, code: str = "exam_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ExamNotFoundError(ExamError):
    def __init__(self, message: str = "Exam not found"):
        super().__init__(message, "exam_not_found")


class QuestionNotFoundError(ExamError):
    def __init__(self, message: str = "Question not found"):
        super().__init__(message, "question_not_found")


class AttemptNotFoundError(ExamError):
    def __init__(self, message: str = "Exam attempt not found"):
        super().__init__(message, "attempt_not_found")


class ExamAccessDeniedError(ExamError):
    """Resource belongs to another tenant or user."""

    def __init__(self, message: str = "Access denied to this exam"):
        super().__init__(message, "access_denied")


class ExamClosedError(ExamError):
    """Exam is not accepting responses."""

    def __init__(self, message: str = "This exam is not accepting responses"):
        super().__init__(message, "exam_closed")


class AttemptSubmittedError(ExamError):
    """Answers of a submitted attempt cannot change."""

    def __init__(self, message: str = "Exam attempt already submitted"):
        super().__init__(message, "attempt_submitted")


class InvalidAnswersError(ExamError):
    def __init__(self, message: str = "Answers reference unknown questions"):
        super().__init__(message, "invalid_answers")


# ==============================================================================
# Exam Service
# ==============================================================================


class ExamService:
    """Service for exams, questions and attempts."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Exams
        self._get_exam = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exams WHERE id = ?"
        )
        self._list_by_tenant = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exams WHERE tenant_id = ?"
        )
        self._insert_exam = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.exams (
                id, tenant_id, course_id, title, description,
                accepting_responses, created_by, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_exam = self.session.prepare(f"""
            UPDATE {self.keyspace}.exams
            SET title = ?, description = ?, course_id = ?, accepting_responses = ?
            WHERE id = ?
        """)
        self._delete_exam = self.session.prepare(
            f"DELETE FROM {self.keyspace}.exams WHERE id = ?"
        )

        # Questions
        self._get_question = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exam_questions WHERE id = ?"
        )
        self._list_questions = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exam_questions WHERE exam_id = ?"
        )
        self._insert_question = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.exam_questions (
                id, exam_id, tenant_id, text, position, created_at
            ) VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._update_question = self.session.prepare(f"""
            UPDATE {self.keyspace}.exam_questions
            SET text = ?, position = ?
            WHERE id = ?
        """)
        self._delete_question = self.session.prepare(
            f"DELETE FROM {self.keyspace}.exam_questions WHERE id = ?"
        )

        # Attempts
        self._get_attempt = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exam_attempts WHERE id = ?"
        )
        self._attempts_by_user = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exam_attempts WHERE user_id = ?"
        )
        self._attempts_by_exam = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exam_attempts WHERE exam_id = ?"
        )
        self._attempts_by_tenant = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.exam_attempts WHERE tenant_id = ?"
        )
        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.exam_attempts (
                id, tenant_id, user_id, exam_id, started_at, completed_at,
                answers, feedback, reviewed_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._save_answers = self.session.prepare(f"""
            UPDATE {self.keyspace}.exam_attempts
            SET answers = ?, completed_at = ?
            WHERE id = ?
        """)
        self._save_review = self.session.prepare(f"""
            UPDATE {self.keyspace}.exam_attempts
            SET feedback = ?, reviewed_at = ?
            WHERE id = ?
        """)
        self._delete_attempt = self.session.prepare(
            f"DELETE FROM {self.keyspace}.exam_attempts WHERE id = ?"
        )

    # ==========================================================================
    # Exam Operations
    # ==========================================================================

    async def create_exam(
        self, tenant_id: UUID, data: CreateExamRequest, creator_id: UUID
    ) -> Exam:
        """Create an exam. The caller has checked the course's tenant."""
        exam = Exam(
            tenant_id=tenant_id,
            course_id=data.course_id,
            title=data.title,
            description=data.description,
            accepting_responses=data.accepting_responses,
            created_by=creator_id,
        )
        await self.session.aexecute(
            self._insert_exam,
            [
                exam.id,
                exam.tenant_id,
                exam.course_id,
                exam.title,
                exam.description,
                exam.accepting_responses,
                exam.created_by,
                exam.created_at,
            ],
        )
        logger.info("exam_created", exam_id=str(exam.id), course_id=str(exam.course_id))
        return exam

    async def get_exam(self, exam_id: UUID) -> Exam | None:
        """Get exam by ID."""
        result = await self.session.aexecute(self._get_exam, [exam_id])
        row = result.one()
        return Exam.from_row(row) if row else None

    async def require_tenant_exam(self, exam_id: UUID, tenant_id: UUID) -> Exam:
        """Get an exam of the given tenant.

        Raises:
            ExamNotFoundError: If the exam does not exist
            ExamAccessDeniedError: If it belongs to another tenant
        """
        exam = await self.get_exam(exam_id)
        if exam is None:
            raise ExamNotFoundError
        if exam.tenant_id != tenant_id:
            raise ExamAccessDeniedError
        return exam

    async def list_tenant_exams(self, tenant_id: UUID) -> list[Exam]:
        """All exams of a tenant, newest first."""
        rows = await self.session.aexecute(self._list_by_tenant, [tenant_id])
        return sorted(
            (Exam.from_row(r) for r in rows),
            key=lambda e: e.created_at,
            reverse=True,
        )

    async def update_exam(self, exam: Exam, data: UpdateExamRequest) -> Exam:
        """Update exam fields that are set."""
        if data.title is not None:
            exam.title = data.title.strip()
        if data.description is not None:
            exam.description = data.description
        if data.course_id is not None:
            exam.course_id = data.course_id
        if data.accepting_responses is not None:
            exam.accepting_responses = data.accepting_responses

        await self.session.aexecute(
            self._update_exam,
            [
                exam.title,
                exam.description,
                exam.course_id,
                exam.accepting_responses,
                exam.id,
            ],
        )
        logger.info("exam_updated", exam_id=str(exam.id))
        return exam

    async def delete_exam(self, exam: Exam) -> None:
        """Delete an exam with its questions and attempts."""
        await self.delete_exam_questions(exam)
        for attempt in await self.list_exam_attempts(exam.id):
            await self.session.aexecute(self._delete_attempt, [attempt.id])
        await self.session.aexecute(self._delete_exam, [exam.id])
        logger.info("exam_deleted", exam_id=str(exam.id))

    # ==========================================================================
    # Question Operations
    # ==========================================================================

    async def list_exam_questions(self, exam_id: UUID) -> list[Question]:
        """Questions of an exam ordered by position."""
        rows = await self.session.aexecute(self._list_questions, [exam_id])
        return sorted(
            (Question.from_row(r) for r in rows),
            key=lambda q: (q.position, q.created_at),
        )

    async def add_question(self, exam: Exam, data: AddQuestionRequest) -> Question:
        """Add a question. Position defaults to the current count."""
        position = data.position
        if position is None:
            position = len(await self.list_exam_questions(exam.id))

        question = Question(
            exam_id=exam.id,
            tenant_id=exam.tenant_id,
            text=data.text,
            position=position,
        )
        await self.session.aexecute(
            self._insert_question,
            [
                question.id,
                question.exam_id,
                question.tenant_id,
                question.text,
                question.position,
                question.created_at,
            ],
        )
        logger.info(
            "question_created", question_id=str(question.id), exam_id=str(exam.id)
        )
        return question

    async def require_tenant_question(
        self, question_id: UUID, tenant_id: UUID
    ) -> Question:
        """Get a question of the given tenant.

        Raises:
            QuestionNotFoundError: If the question does not exist
            ExamAccessDeniedError: If it belongs to another tenant
        """
        result = await self.session.aexecute(self._get_question, [question_id])
        row = result.one()
        if row is None:
            raise QuestionNotFoundError
        question = Question.from_row(row)
        if question.tenant_id != tenant_id:
            raise ExamAccessDeniedError("Access denied to this question")
        return question

    async def update_question(
        self, question: Question, data: UpdateQuestionRequest
    ) -> Question:
        """Update question fields that are set."""
        if data.text is not None:
            question.text = data.text
        if data.position is not None:
            question.position = data.position

        await self.session.aexecute(
            self._update_question, [question.text, question.position, question.id]
        )
        logger.info("question_updated", question_id=str(question.id))
        return question

    async def delete_question(self, question: Question) -> None:
        await self.session.aexecute(self._delete_question, [question.id])
        logger.info("question_deleted", question_id=str(question.id))

    async def delete_exam_questions(self, exam: Exam) -> int:
        """Delete every question of an exam. Returns how many were removed."""
        questions = await self.list_exam_questions(exam.id)
        for question in questions:
            await self.session.aexecute(self._delete_question, [question.id])
        logger.info(
            "exam_questions_deleted", exam_id=str(exam.id), count=len(questions)
        )
        return len(questions)

    # ==========================================================================
    # Attempt Operations
    # ==========================================================================

    async def start_attempt(self, user_id: UUID, exam: Exam) -> ExamAttempt:
        """Start an attempt.

        Raises:
            ExamClosedError: If the exam is not accepting responses
        """
        if not exam.accepting_responses:
            raise ExamClosedError

        attempt = ExamAttempt(
            tenant_id=exam.tenant_id,
            user_id=user_id,
            exam_id=exam.id,
        )
        await self.session.aexecute(
            self._insert_attempt,
            [
                attempt.id,
                attempt.tenant_id,
                attempt.user_id,
                attempt.exam_id,
                attempt.started_at,
                attempt.completed_at,
                attempt.answers,
                attempt.feedback,
                attempt.reviewed_at,
            ],
        )
        logger.info(
            "exam_attempt_started",
            attempt_id=str(attempt.id),
            exam_id=str(exam.id),
            user_id=str(user_id),
        )
        return attempt

    async def get_attempt(self, attempt_id: UUID) -> ExamAttempt | None:
        """Get attempt by ID."""
        result = await self.session.aexecute(self._get_attempt, [attempt_id])
        row = result.one()
        return ExamAttempt.from_row(row) if row else None

    async def require_tenant_attempt(
        self, attempt_id: UUID, tenant_id: UUID
    ) -> ExamAttempt:
        """Get an attempt of the given tenant.

        Raises:
            AttemptNotFoundError: If it does not exist in the tenant
        """
        attempt = await self.get_attempt(attempt_id)
        if attempt is None or attempt.tenant_id != tenant_id:
            raise AttemptNotFoundError
        return attempt

    async def list_user_attempts(self, user_id: UUID) -> list[ExamAttempt]:
        """Attempts of a user, newest first."""
        rows = await self.session.aexecute(self._attempts_by_user, [user_id])
        return _newest_first(ExamAttempt.from_row(r) for r in rows)

    async def list_exam_attempts(self, exam_id: UUID) -> list[ExamAttempt]:
        """Attempts at an exam, newest first."""
        rows = await self.session.aexecute(self._attempts_by_exam, [exam_id])
        return _newest_first(ExamAttempt.from_row(r) for r in rows)

    async def list_tenant_attempts(self, tenant_id: UUID) -> list[ExamAttempt]:
        """Attempts in a tenant, newest first."""
        rows = await self.session.aexecute(self._attempts_by_tenant, [tenant_id])
        return _newest_first(ExamAttempt.from_row(r) for r in rows)

    async def update_attempt(
        self, attempt: ExamAttempt, data: UpdateAttemptRequest
    ) -> tuple[ExamAttempt, bool]:
        """Save answers and optionally submit.

        Returns:
            (attempt, submitted) where submitted is True only on the
            transition to completed

        Raises:
            AttemptSubmittedError: If answers change after submission
            InvalidAnswersError: If an answer names a question of another exam
        """
        if data.answers is not None:
            if attempt.is_completed:
                raise AttemptSubmittedError
            question_ids = {
                q.id for q in await self.list_exam_questions(attempt.exam_id)
            }
            if not set(data.answers) <= question_ids:
                raise InvalidAnswersError
            attempt.answers = {str(k): v for k, v in data.answers.items()}

        submitted = data.completed and not attempt.is_completed
        if submitted:
            attempt.completed_at = utcnow()

        await self.session.aexecute(
            self._save_answers,
            [attempt.answers, attempt.completed_at, attempt.id],
        )
        if submitted:
            logger.info(
                "exam_attempt_submitted",
                attempt_id=str(attempt.id),
                answered=len(attempt.answers),
            )
        return attempt, submitted

    async def grade_attempt(self, attempt: ExamAttempt, feedback: str) -> ExamAttempt:
        """Record admin feedback and mark the attempt reviewed."""
        attempt.feedback = feedback
        attempt.reviewed_at = utcnow()
        await self.session.aexecute(
            self._save_review, [attempt.feedback, attempt.reviewed_at, attempt.id]
        )
        logger.info("exam_attempt_graded", attempt_id=str(attempt.id))
        return attempt

    # ==========================================================================
    # Response Helpers
    # ==========================================================================

    def to_response(self, exam: Exam) -> ExamResponse:
        return ExamResponse.model_validate(exam)

    def question_response(self, question: Question) -> QuestionResponse:
        return QuestionResponse.model_validate(question)

    def attempt_response(self, attempt: ExamAttempt) -> AttemptResponse:
        return AttemptResponse.model_validate(attempt)


def _newest_first(attempts) -> list[ExamAttempt]:
    return sorted(attempts, key=lambda a: a.started_at, reverse=True)
