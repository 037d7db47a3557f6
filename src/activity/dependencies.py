"""FastAPI dependency injection for activity logging."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends

from .service import ActivityService
from .writer import ActivityWriter


# Getters (set during app initialization)
_activity_service_getter: Callable[[], ActivityService] | None = None
_activity_writer_getter: Callable[[], ActivityWriter] | None = None


def set_activity_service_getter(getter: Callable[[], ActivityService]) -> None:
    """Set the activity service getter function."""
    global _activity_service_getter  # noqa: PLW0603 - Required for DI pattern
    _activity_service_getter = getter


def set_activity_writer_getter(getter: Callable[[], ActivityWriter]) -> None:
    """Set the activity writer getter function."""
    global _activity_writer_getter  # noqa: PLW0603 - Required for DI pattern
    _activity_writer_getter = getter


def get_activity_service() -> ActivityService:
    """Get ActivityService instance.

    Raises:
        RuntimeError: If service not initialized
    """
    if _activity_service_getter is None:
        msg = "ActivityService not configured"
        raise RuntimeError(msg)
    return _activity_service_getter()


def get_activity_writer() -> ActivityWriter:
    """Get ActivityWriter instance.

    Raises:
        RuntimeError: If writer not initialized
    """
    if _activity_writer_getter is None:
        msg = "ActivityWriter not configured"
        raise RuntimeError(msg)
    return _activity_writer_getter()


ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]
ActivityWriterDep = Annotated[ActivityWriter, Depends(get_activity_writer)]
