"""FastAPI dependencies for progress tracking."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import ProgressError, ProgressService


_progress_service_getter: Callable[[], ProgressService] | None = None


def set_progress_service_getter(getter: Callable[[], ProgressService]) -> None:
    """Set the progress service getter function (called by main.py)."""
    global _progress_service_getter  # noqa: PLW0603 - Required for DI pattern
    _progress_service_getter = getter


def get_progress_service() -> ProgressService:
    """Get ProgressService instance from app state."""
    if _progress_service_getter is None:
        msg = "ProgressService not configured"
        raise RuntimeError(msg)
    return _progress_service_getter()


ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert progress errors to HTTP exceptions."""
    status_map = {
        "not_enrolled": status.HTTP_403_FORBIDDEN,
        "already_enrolled": status.HTTP_400_BAD_REQUEST,
        "enrollment_not_found": status.HTTP_404_NOT_FOUND,
        "access_denied": status.HTTP_403_FORBIDDEN,
        "lesson_mismatch": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
