"""Pydantic schemas for tenants."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.auth.schemas import USERNAME_PATTERN


class TenantAdminRequest(BaseModel):
    """Admin account created together with a tenant."""

    username: str = Field(
        ..., min_length=3, max_length=50, pattern=USERNAME_PATTERN
    )
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


class CreateTenantRequest(BaseModel):
    """Tenant creation request.

    Without `admin` the tenant starts with no admin account, since
    self-registration never grants that role.
    """

    name: str = Field(..., min_length=2, max_length=200, description="Display name")
    subdomain: str = Field(
        ...,
        min_length=2,
        max_length=63,
        pattern=r"^[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?$",
        description="Unique subdomain",
    )
    admin: TenantAdminRequest | None = None


class TenantResponse(BaseModel):
    """Tenant response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    subdomain: str
    created_at: datetime
    admin_id: UUID | None = None
