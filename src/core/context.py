"""Request context management using contextvars.

Each request gets a unique ID. Once the session is resolved, the user and
tenant it belongs to are bound as well, so every log line emitted while
serving the request can be attributed without passing them around.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
tenant_id_var: ContextVar[str | None] = ContextVar("tenant_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the user ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_tenant_id() -> str | None:
    """Get the current tenant ID."""
    return tenant_id_var.get()


def set_tenant_id(tenant_id: str | UUID | None) -> None:
    """Set the tenant ID for the current context."""
    tenant_id_var.set(str(tenant_id) if tenant_id is not None else None)


def bind_session(user_id: str | UUID, tenant_id: str | UUID) -> None:
    """Bind the authenticated user and their tenant to the current context."""
    set_user_id(user_id)
    set_tenant_id(tenant_id)


def get_context() -> dict[str, Any]:
    """Get all context variables as a dictionary.

    Returns:
        Dictionary with request_id, user_id and tenant_id (only those set).
    """
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    tenant_id = get_tenant_id()
    if tenant_id:
        context["tenant_id"] = tenant_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request so values never leak into the next one.
    """
    request_id_var.set("")
    user_id_var.set(None)
    tenant_id_var.set(None)
