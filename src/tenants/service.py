"""Tenant service layer."""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from .models import Tenant, normalize_subdomain
from .schemas import CreateTenantRequest, TenantResponse


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class TenantError(Exception):
    """Base tenant error."""

    def __init__(self, message: str, code: str = "tenant_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class TenantNotFoundError(TenantError):
    """Tenant not found."""

    def __init__(self, message: str = "Tenant not found"):
        super().__init__(message, "tenant_not_found")


class SubdomainTakenError(TenantError):
    """Subdomain already registered."""

    def __init__(self, message: str = "Subdomain already in use"):
        super().__init__(message, "subdomain_taken")


# ==============================================================================
# Tenant Service
# ==============================================================================


class TenantService:
    """Service for tenant management."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_tenant = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.tenants WHERE id = ?"
        )
        self._list_tenants = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.tenants"
        )
        self._insert_tenant = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.tenants (id, name, subdomain, created_at)
            VALUES (?, ?, ?, ?)
        """)
        self._get_by_subdomain = self.session.prepare(
            f"SELECT tenant_id FROM {self.keyspace}.tenants_by_subdomain "
            "WHERE subdomain = ?"
        )
        # LWT keeps two concurrent registrations of the same subdomain apart
        self._claim_subdomain = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.tenants_by_subdomain (subdomain, tenant_id)
            VALUES (?, ?) IF NOT EXISTS
        """)

    async def create_tenant(self, data: CreateTenantRequest) -> Tenant:
        """Create a tenant.

        Raises:
            SubdomainTakenError: If the subdomain is already registered
        """
        tenant = Tenant(name=data.name, subdomain=data.subdomain)

        claim = await self.session.aexecute(
            self._claim_subdomain, [tenant.subdomain, tenant.id]
        )
        if not claim.was_applied:
            raise SubdomainTakenError

        await self.session.aexecute(
            self._insert_tenant,
            [tenant.id, tenant.name, tenant.subdomain, tenant.created_at],
        )

        logger.info(
            "tenant_created", tenant_id=str(tenant.id), subdomain=tenant.subdomain
        )
        return tenant

    async def get_tenant(self, tenant_id: UUID) -> Tenant | None:
        """Get tenant by ID."""
        result = await self.session.aexecute(self._get_tenant, [tenant_id])
        row = result.one()
        return Tenant.from_row(row) if row else None

    async def get_tenant_by_subdomain(self, subdomain: str) -> Tenant | None:
        """Get tenant by subdomain."""
        result = await self.session.aexecute(
            self._get_by_subdomain, [normalize_subdomain(subdomain)]
        )
        row = result.one()
        if not row:
            return None
        return await self.get_tenant(row.tenant_id)

    async def require_tenant(self, tenant_id: UUID) -> Tenant:
        """Get tenant or raise TenantNotFoundError."""
        tenant = await self.get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError
        return tenant

    async def list_tenants(self) -> list[Tenant]:
        """List all tenants (superadmin view)."""
        rows = await self.session.aexecute(self._list_tenants)
        return sorted((Tenant.from_row(r) for r in rows), key=lambda t: t.name)

    def to_response(self, tenant: Tenant) -> TenantResponse:
        """Convert entity to response model."""
        return TenantResponse.model_validate(tenant)
