"""Database models for tenants.

Tables:
- tenants: Main table
- tenants_by_subdomain: Lookup enforcing subdomain uniqueness
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from src.core.datetime_utils import ensure_utc_aware, utcnow


TENANT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.tenants (
    id UUID PRIMARY KEY,
    name TEXT,
    subdomain TEXT,
    created_at TIMESTAMP
)
"""

TENANTS_BY_SUBDOMAIN_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.tenants_by_subdomain (
    subdomain TEXT PRIMARY KEY,
    tenant_id UUID
)
"""

TENANTS_TABLES_CQL = [
    TENANT_TABLE_CQL,
    TENANTS_BY_SUBDOMAIN_TABLE_CQL,
]


def normalize_subdomain(subdomain: str) -> str:
    """Subdomains are stored lowercase without surrounding whitespace."""
    return subdomain.strip().lower()


class Tenant:
    """Tenant entity: an isolated organisation namespace."""

    def __init__(
        self,
        id: UUID | None = None,
        name: str = "",
        subdomain: str = "",
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name.strip()
        self.subdomain = normalize_subdomain(subdomain)
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Tenant":
        """Create Tenant instance from Cassandra row."""
        return cls(
            id=row.id,
            name=row.name,
            subdomain=row.subdomain,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "subdomain": self.subdomain,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Tenant {self.subdomain}>"
