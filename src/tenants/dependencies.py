"""FastAPI dependencies for tenants."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import TenantError, TenantService


_tenant_service_getter: Callable[[], TenantService] | None = None


def set_tenant_service_getter(getter: Callable[[], TenantService]) -> None:
    """Set the tenant service getter function (called by main.py)."""
    global _tenant_service_getter  # noqa: PLW0603 - Required for DI pattern
    _tenant_service_getter = getter


def get_tenant_service() -> TenantService:
    """Get TenantService instance from app state."""
    if _tenant_service_getter is None:
        msg = "TenantService not configured"
        raise RuntimeError(msg)
    return _tenant_service_getter()


TenantServiceDep = Annotated[TenantService, Depends(get_tenant_service)]


def handle_tenant_error(error: TenantError) -> HTTPException:
    """Convert tenant errors to HTTP exceptions."""
    status_map = {
        "tenant_not_found": status.HTTP_404_NOT_FOUND,
        "subdomain_taken": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
