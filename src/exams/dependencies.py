"""FastAPI dependencies for exams."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import ExamError, ExamService


_exam_service_getter: Callable[[], ExamService] | None = None


def set_exam_service_getter(getter: Callable[[], ExamService]) -> None:
    """Set the exam service getter function (called by main.py)."""
    global _exam_service_getter  # noqa: PLW0603 - Required for DI pattern
    _exam_service_getter = getter


def get_exam_service() -> ExamService:
    """Get ExamService instance from app state."""
    if _exam_service_getter is None:
        msg = "ExamService not configured"
        raise RuntimeError(msg)
    return _exam_service_getter()


ExamServiceDep = Annotated[ExamService, Depends(get_exam_service)]


def handle_exam_error(error: ExamError) -> HTTPException:
    """Convert exam errors to HTTP exceptions."""
    status_map = {
        "exam_not_found": status.HTTP_404_NOT_FOUND,
        "question_not_found": status.HTTP_404_NOT_FOUND,
        "attempt_not_found": status.HTTP_404_NOT_FOUND,
        "access_denied": status.HTTP_403_FORBIDDEN,
        "exam_closed": status.HTTP_400_BAD_REQUEST,
        "attempt_submitted": status.HTTP_400_BAD_REQUEST,
        "invalid_answers": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
