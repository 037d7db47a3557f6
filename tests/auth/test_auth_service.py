"""Tests for AuthService registration and login."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.auth.models import User
from src.auth.permissions import UserRole
from src.auth.schemas import RegisterRequest
from src.auth.security import decode_access_token, hash_password
from src.auth.service import (
    AuthService,
    InvalidCredentialsError,
    InvalidTenantError,
    PermissionDeniedError,
    UserExistsError,
)
from src.tenants.models import Tenant


@pytest.fixture
def tenant_service(tenant_id) -> MagicMock:
    service = MagicMock()
    service.get_tenant = AsyncMock(return_value=Tenant(id=tenant_id, name="Acme"))
    return service


@pytest.fixture
def auth_service(mock_session, tenant_service) -> AuthService:
    return AuthService(mock_session, "learnhub", tenant_service)


@pytest.fixture
def registration(tenant_id) -> RegisterRequest:
    return RegisterRequest(
        username="Jane.Doe",
        password="secret1",
        first_name="Jane",
        last_name="Doe",
        email="Jane@Example.com",
        tenant_id=tenant_id,
        role="superadmin",
    )


class TestRegister:
    @pytest.mark.asyncio
    async def test_first_account_of_system_becomes_admin(
        self, auth_service, mock_session, result_factory, registration
    ) -> None:
        mock_session.aexecute.side_effect = [
            result_factory(applied=True),  # username claim
            result_factory(),  # no first-user flag yet
            result_factory(applied=True),  # flag claim
            result_factory(),  # insert
        ]

        user = await auth_service.register_user(registration)

        assert user.role == UserRole.ADMIN.value
        assert user.username == "jane.doe"
        assert user.email == "jane@example.com"
        assert user.password_hash != "secret1"

    @pytest.mark.asyncio
    async def test_first_account_of_new_tenant_is_student(
        self, auth_service, mock_session, result_factory, registration
    ) -> None:
        mock_session.aexecute.side_effect = [
            result_factory(applied=True),
            result_factory(SimpleNamespace(value=uuid4())),  # flag already set
            result_factory(),
        ]

        user = await auth_service.register_user(registration)

        assert user.role == UserRole.STUDENT.value
        assert mock_session.aexecute.await_count == 3

    @pytest.mark.asyncio
    async def test_lost_first_user_race_is_student(
        self, auth_service, mock_session, result_factory, registration
    ) -> None:
        mock_session.aexecute.side_effect = [
            result_factory(applied=True),
            result_factory(),
            result_factory(applied=False),  # another registration won the flag
            result_factory(),
        ]

        user = await auth_service.register_user(registration)
        assert user.role == UserRole.STUDENT.value

    @pytest.mark.asyncio
    async def test_explicit_admin_role(
        self, auth_service, mock_session, result_factory, registration
    ) -> None:
        mock_session.aexecute.side_effect = [
            result_factory(applied=True),
            result_factory(),
        ]

        user = await auth_service.register_user(registration, role=UserRole.ADMIN)

        assert user.role == UserRole.ADMIN.value
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_username_taken(
        self, auth_service, mock_session, result_factory, registration
    ) -> None:
        mock_session.aexecute.side_effect = [result_factory(applied=False)]

        with pytest.raises(UserExistsError):
            await auth_service.register_user(registration)
        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_unknown_tenant(
        self, auth_service, tenant_service, registration
    ) -> None:
        tenant_service.get_tenant = AsyncMock(return_value=None)
        with pytest.raises(InvalidTenantError):
            await auth_service.register_user(registration)


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_success_and_token_claims(self, auth_service, tenant_id) -> None:
        user = User(
            tenant_id=tenant_id,
            username="jane",
            password_hash=hash_password("secret1"),
            role=UserRole.ADMIN.value,
        )
        auth_service.get_user_by_username = AsyncMock(return_value=user)

        assert await auth_service.authenticate_user("jane", "secret1") is user

        claims = decode_access_token(auth_service.create_session_token(user))
        assert claims["sub"] == str(user.id)
        assert claims["tenant_id"] == str(tenant_id)
        assert claims["role"] == "admin"

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth_service, tenant_id) -> None:
        user = User(
            tenant_id=tenant_id, username="jane", password_hash=hash_password("x1y2z3")
        )
        auth_service.get_user_by_username = AsyncMock(return_value=user)
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user("jane", "nope")

    @pytest.mark.asyncio
    async def test_unknown_user(self, auth_service) -> None:
        with pytest.raises(InvalidCredentialsError):
            await auth_service.authenticate_user("ghost", "whatever")


class TestTenantUser:
    @pytest.mark.asyncio
    async def test_other_tenant_denied(self, auth_service, tenant_id) -> None:
        actor = MagicMock(tenant_id=tenant_id)
        auth_service.get_user_by_id = AsyncMock(
            return_value=User(tenant_id=uuid4(), username="other")
        )
        with pytest.raises(PermissionDeniedError):
            await auth_service.get_tenant_user(actor, uuid4())
