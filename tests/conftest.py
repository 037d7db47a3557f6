"""Shared fixtures.

The app is created without running its lifespan, so no Cassandra or Redis is
needed. Route tests swap services in through the `set_*_getter` hooks.
"""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Callable  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.auth.permissions import UserRole  # noqa: E402
from src.auth.security import create_access_token  # noqa: E402


TENANT_ID = UUID("00000000-0000-0000-0000-0000000000a1")


@pytest.fixture(scope="session")
def app():
    from src.main import app

    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def token_factory() -> Callable[..., str]:
    """Build a session token for a role, tenant and user."""

    def _token(
        role: UserRole = UserRole.STUDENT,
        user_id: UUID | None = None,
        tenant_id: UUID = TENANT_ID,
    ) -> str:
        return create_access_token(
            {
                "sub": str(user_id or uuid4()),
                "username": f"{role.value}-user",
                "role": role.value,
                "tenant_id": str(tenant_id),
            }
        )

    return _token


@pytest.fixture
def admin_headers(token_factory) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_factory(UserRole.ADMIN)}"}


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_headers(token_factory, student_id) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token_factory(UserRole.STUDENT, student_id)}"
    }


@pytest.fixture
def mock_session() -> MagicMock:
    """Cassandra session double.

    `prepare()` returns a fresh mock per statement; `aexecute()` is awaitable
    and returns an empty result unless a test configures it.
    """
    session = MagicMock()
    session.prepare.side_effect = lambda cql: MagicMock(name="prepared", cql=cql)
    session.aexecute = AsyncMock(return_value=make_result())
    return session


def make_result(*rows, applied: bool = True) -> MagicMock:
    """Result set double iterating over `rows`."""
    result = MagicMock()
    result.__iter__.side_effect = lambda: iter(rows)
    result.one.return_value = rows[0] if rows else None
    result.was_applied = applied
    return result


@pytest.fixture
def result_factory() -> Callable[..., MagicMock]:
    return make_result


@pytest.fixture
def tenant_id() -> UUID:
    return TENANT_ID
