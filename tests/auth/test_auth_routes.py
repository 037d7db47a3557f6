"""Tests for session and user management endpoints."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.activity.models import ActivityType
from src.auth.models import User
from src.auth.permissions import UserRole
from src.auth.schemas import UserResponse
from src.auth.service import InvalidCredentialsError, UserExistsError


@pytest.fixture
def auth_service() -> MagicMock:
    from src.auth.router import set_auth_service_getter

    service = MagicMock()
    service.to_response.side_effect = UserResponse.model_validate
    service.create_session_token.return_value = "session-token"
    set_auth_service_getter(lambda: service)
    return service


@pytest.fixture
def activity() -> MagicMock:
    from src.activity.dependencies import set_activity_writer_getter

    writer = MagicMock()
    set_activity_writer_getter(lambda: writer)
    return writer


@pytest.fixture
def user(tenant_id) -> User:
    return User(
        id=uuid4(),
        tenant_id=tenant_id,
        username="jane",
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        role=UserRole.STUDENT.value,
        created_at=datetime.now(UTC),
    )


def registration(tenant_id) -> dict:
    return {
        "username": "jane",
        "password": "secret1",
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@example.com",
        "tenant_id": str(tenant_id),
    }


class TestRegister:
    def test_created(self, client: TestClient, auth_service, user, tenant_id) -> None:
        auth_service.register_user = AsyncMock(return_value=user)

        response = client.post("/api/register", json=registration(tenant_id))

        assert response.status_code == 201
        body = response.json()
        assert body["username"] == "jane"
        assert body["role"] == "student"
        assert "password_hash" not in body

    def test_username_taken(self, client: TestClient, auth_service, tenant_id) -> None:
        auth_service.register_user = AsyncMock(side_effect=UserExistsError())

        response = client.post("/api/register", json=registration(tenant_id))

        assert response.status_code == 400
        assert response.json()["error"] is True

    def test_short_password(self, client: TestClient, auth_service, tenant_id) -> None:
        data = registration(tenant_id) | {"password": "123"}

        response = client.post("/api/register", json=data)

        assert response.status_code == 422
        fields = [d["field"] for d in response.json()["details"]]
        assert "body.password" in fields


class TestLogin:
    def test_sets_cookie_and_records_activity(
        self, client: TestClient, auth_service, activity, user
    ) -> None:
        auth_service.authenticate_user = AsyncMock(return_value=user)

        response = client.post(
            "/api/login", json={"username": "jane", "password": "secret1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["access_token"] == "session-token"
        assert body["token_type"] == "bearer"
        assert body["user"]["id"] == str(user.id)
        assert "session-token" in response.headers["set-cookie"]
        assert "httponly" in response.headers["set-cookie"].lower()
        activity.emit.assert_called_once_with(
            user.tenant_id, user.id, ActivityType.LOGIN
        )

    def test_invalid_credentials(
        self, client: TestClient, auth_service, activity
    ) -> None:
        auth_service.authenticate_user = AsyncMock(
            side_effect=InvalidCredentialsError()
        )

        response = client.post(
            "/api/login", json={"username": "jane", "password": "wrong1"}
        )

        assert response.status_code == 401
        activity.emit.assert_not_called()


class TestSession:
    def test_me_requires_session(self, client: TestClient) -> None:
        response = client.get("/api/user")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_me(self, client: TestClient, auth_service, user, token_factory) -> None:
        auth_service.get_user_by_id = AsyncMock(return_value=user)
        token = token_factory(UserRole.STUDENT, user.id)

        response = client.get(
            "/api/user", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 200
        assert response.json()["id"] == str(user.id)

    def test_cookie_session(
        self, client: TestClient, auth_service, user, token_factory
    ) -> None:
        from src.config import get_settings

        auth_service.get_user_by_id = AsyncMock(return_value=user)
        client.cookies.set(
            get_settings().auth_cookie_name,
            token_factory(UserRole.STUDENT, user.id),
        )

        response = client.get("/api/user")

        assert response.status_code == 200

    def test_logout_clears_cookie(self, client: TestClient, student_headers) -> None:
        response = client.post("/api/logout", headers=student_headers)

        assert response.status_code == 204
        assert "set-cookie" in response.headers


class TestUsers:
    def test_students_forbidden(
        self, client: TestClient, auth_service, student_headers
    ) -> None:
        response = client.get("/api/users", headers=student_headers)

        assert response.status_code == 403

    def test_admin_lists_tenant_users(
        self, client: TestClient, auth_service, admin_headers, user, tenant_id
    ) -> None:
        auth_service.list_tenant_users = AsyncMock(return_value=[user])

        response = client.get(
            "/api/users", params={"role": "student"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert [u["username"] for u in response.json()] == ["jane"]
        auth_service.list_tenant_users.assert_awaited_once_with(
            tenant_id, UserRole.STUDENT
        )
