"""FastAPI dependencies for batches."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import BatchError, BatchService


_batch_service_getter: Callable[[], BatchService] | None = None


def set_batch_service_getter(getter: Callable[[], BatchService]) -> None:
    """Set the batch service getter function (called by main.py)."""
    global _batch_service_getter  # noqa: PLW0603 - Required for DI pattern
    _batch_service_getter = getter


def get_batch_service() -> BatchService:
    """Get BatchService instance from app state."""
    if _batch_service_getter is None:
        msg = "BatchService not configured"
        raise RuntimeError(msg)
    return _batch_service_getter()


BatchServiceDep = Annotated[BatchService, Depends(get_batch_service)]


def handle_batch_error(error: BatchError) -> HTTPException:
    """Convert batch errors to HTTP exceptions."""
    status_map = {
        "batch_not_found": status.HTTP_404_NOT_FOUND,
        "membership_not_found": status.HTTP_404_NOT_FOUND,
        "access_denied": status.HTTP_403_FORBIDDEN,
        "batch_code_taken": status.HTTP_409_CONFLICT,
        "batch_full": status.HTTP_400_BAD_REQUEST,
        "already_in_batch": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
