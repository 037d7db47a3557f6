"""Tenant (organisation) management.

Every other record is scoped to exactly one tenant.
"""

from .models import TENANTS_TABLES_CQL, Tenant


__all__ = ["TENANTS_TABLES_CQL", "Tenant"]
