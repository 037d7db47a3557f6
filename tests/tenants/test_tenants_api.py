"""Tests for tenant endpoints."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.auth.permissions import UserRole
from src.tenants.models import Tenant
from src.tenants.schemas import TenantResponse
from src.tenants.service import SubdomainTakenError


ADMIN = {
    "username": "acme_admin",
    "password": "s3cret-pass",
    "first_name": "Ada",
    "last_name": "Admin",
    "email": "ada@acme-academy.com",
}


@pytest.fixture
def tenant() -> Tenant:
    return Tenant(name="Acme Academy", subdomain="acme")


@pytest.fixture
def services(tenant):
    from src.auth.router import set_auth_service_getter
    from src.tenants.dependencies import set_tenant_service_getter

    ns = SimpleNamespace(tenant=MagicMock(), auth=MagicMock())
    ns.tenant.create_tenant = AsyncMock(return_value=tenant)
    ns.tenant.get_tenant_by_subdomain = AsyncMock(return_value=tenant)
    ns.tenant.to_response.side_effect = TenantResponse.model_validate
    ns.auth.get_user_by_username = AsyncMock(return_value=None)
    ns.auth.register_user = AsyncMock(return_value=SimpleNamespace(id=uuid4()))

    set_tenant_service_getter(lambda: ns.tenant)
    set_auth_service_getter(lambda: ns.auth)
    return ns


@pytest.fixture
def superadmin_headers(token_factory) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_factory(UserRole.SUPERADMIN)}"}


class TestLookup:
    def test_known_subdomain(self, client: TestClient, services, tenant) -> None:
        response = client.get("/api/tenants/lookup/acme")

        assert response.status_code == 200
        assert response.json()["id"] == str(tenant.id)
        assert response.json()["admin_id"] is None

    def test_unknown_subdomain(self, client: TestClient, services) -> None:
        services.tenant.get_tenant_by_subdomain.return_value = None

        response = client.get("/api/tenants/lookup/nowhere")

        assert response.status_code == 404
        assert response.json()["message"] == "Tenant not found"


class TestCreateTenant:
    def test_requires_superadmin(
        self, client: TestClient, services, admin_headers
    ) -> None:
        response = client.post(
            "/api/tenants",
            json={"name": "Acme", "subdomain": "acme"},
            headers=admin_headers,
        )

        assert response.status_code == 403
        services.tenant.create_tenant.assert_not_awaited()

    def test_without_admin(
        self, client: TestClient, services, superadmin_headers
    ) -> None:
        response = client.post(
            "/api/tenants",
            json={"name": "Acme Academy", "subdomain": "acme"},
            headers=superadmin_headers,
        )

        assert response.status_code == 201
        assert response.json()["admin_id"] is None
        services.auth.register_user.assert_not_awaited()

    def test_duplicate_subdomain(
        self, client: TestClient, services, superadmin_headers
    ) -> None:
        services.tenant.create_tenant.side_effect = SubdomainTakenError()

        response = client.post(
            "/api/tenants",
            json={"name": "Acme Academy", "subdomain": "acme"},
            headers=superadmin_headers,
        )

        assert response.status_code == 409

    def test_creates_admin_with_admin_role(
        self, client: TestClient, services, tenant, superadmin_headers
    ) -> None:
        response = client.post(
            "/api/tenants",
            json={"name": "Acme Academy", "subdomain": "acme", "admin": ADMIN},
            headers=superadmin_headers,
        )

        assert response.status_code == 201
        admin = services.auth.register_user.return_value
        assert response.json()["admin_id"] == str(admin.id)

        call = services.auth.register_user.await_args
        assert call.kwargs["role"] is UserRole.ADMIN
        request = call.args[0]
        assert request.username == ADMIN["username"]
        assert request.tenant_id == tenant.id

    def test_admin_username_taken(
        self, client: TestClient, services, superadmin_headers
    ) -> None:
        services.auth.get_user_by_username.return_value = MagicMock()

        response = client.post(
            "/api/tenants",
            json={"name": "Acme Academy", "subdomain": "acme", "admin": ADMIN},
            headers=superadmin_headers,
        )

        assert response.status_code == 400
        services.tenant.create_tenant.assert_not_awaited()
        services.auth.register_user.assert_not_awaited()
