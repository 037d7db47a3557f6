# Core infrastructure
from src.core.context import (
    bind_session,
    clear_context,
    get_context,
    get_request_id,
    get_tenant_id,
    get_user_id,
    set_request_id,
    set_tenant_id,
    set_user_id,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "bind_session",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_tenant_id",
    "get_user_id",
    "init_async_cassandra",
    "set_request_id",
    "set_tenant_id",
    "set_user_id",
    "shutdown_async_cassandra",
]


def __getattr__(name: str):
    # Imported lazily: src.core.database pulls in every package's models,
    # which themselves import from src.core.
    if name in ("init_async_cassandra", "shutdown_async_cassandra"):
        from src.core import database

        return getattr(database, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
