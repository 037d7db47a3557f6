"""Tests for auth schemas."""

from datetime import datetime
from uuid import uuid4

import pytest
from pydantic import ValidationError

from src.auth.permissions import UserRole
from src.auth.schemas import (
    LoginRequest,
    RegisterRequest,
    UpdateUserRequest,
    UserResponse,
)


def register_data(**overrides) -> dict:
    data = {
        "username": "jane.doe",
        "password": "secret1",
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@example.com",
        "tenant_id": str(uuid4()),
    }
    data.update(overrides)
    return data


class TestRegisterRequest:
    def test_valid_registration(self) -> None:
        data = RegisterRequest(**register_data(first_name="  Jane "))
        assert data.first_name == "Jane"
        assert data.email == "jane@example.com"

    def test_client_role_is_accepted_but_unused(self) -> None:
        data = RegisterRequest(**register_data(role="admin"))
        assert data.role == "admin"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("email", "invalid-email"),
            ("username", "ab"),
            ("username", "has space"),
            ("password", "12345"),
            ("first_name", "   "),
            ("tenant_id", "not-a-uuid"),
        ],
    )
    def test_invalid_field(self, field: str, value: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(**register_data(**{field: value}))
        assert field in str(exc_info.value)


class TestLoginRequest:
    def test_requires_both_fields(self) -> None:
        with pytest.raises(ValidationError):
            LoginRequest(username="", password="x")
        assert LoginRequest(username="jane", password="x").username == "jane"


class TestUpdateUserRequest:
    def test_partial_update(self) -> None:
        data = UpdateUserRequest(first_name="Janet")
        assert data.model_dump(exclude_unset=True) == {"first_name": "Janet"}

    def test_role_must_be_known(self) -> None:
        with pytest.raises(ValidationError):
            UpdateUserRequest(role="instructor")
        assert UpdateUserRequest(role="admin").role is UserRole.ADMIN


class TestUserResponse:
    def test_no_password_hash(self) -> None:
        response = UserResponse(
            id=uuid4(),
            tenant_id=uuid4(),
            username="jane",
            first_name="Jane",
            last_name="Doe",
            email="jane@example.com",
            role="student",
            created_at=datetime.now(),
        )
        assert "password_hash" not in response.model_dump()
