"""Tenant API endpoints."""

import structlog
from fastapi import APIRouter, HTTPException, status

from src.auth.dependencies import CurrentUser, SuperAdminUser
from src.auth.permissions import UserRole
from src.auth.router import AuthServiceDep, handle_auth_error
from src.auth.schemas import RegisterRequest
from src.auth.service import AuthError, UserExistsError

from .dependencies import TenantServiceDep, handle_tenant_error
from .schemas import CreateTenantRequest, TenantResponse
from .service import TenantError


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/tenants", tags=["tenants"])


@router.get(
    "",
    response_model=TenantResponse,
    summary="Current user's tenant",
)
async def get_my_tenant(
    user: CurrentUser,
    tenant_service: TenantServiceDep,
) -> TenantResponse:
    """Return the tenant the caller belongs to."""
    try:
        tenant = await tenant_service.require_tenant(user.tenant_id)
    except TenantError as e:
        raise handle_tenant_error(e) from e
    return tenant_service.to_response(tenant)


@router.get(
    "/all",
    response_model=list[TenantResponse],
    summary="List tenants (superadmin)",
)
async def list_tenants(
    user: SuperAdminUser,
    tenant_service: TenantServiceDep,
) -> list[TenantResponse]:
    """List every tenant."""
    return [tenant_service.to_response(t) for t in await tenant_service.list_tenants()]


@router.get(
    "/lookup/{subdomain}",
    response_model=TenantResponse,
    summary="Find tenant by subdomain",
)
async def lookup_tenant(
    subdomain: str,
    tenant_service: TenantServiceDep,
) -> TenantResponse:
    """Public lookup used by the registration form."""
    tenant = await tenant_service.get_tenant_by_subdomain(subdomain)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found"
        )
    return tenant_service.to_response(tenant)


@router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create tenant (superadmin)",
)
async def create_tenant(
    data: CreateTenantRequest,
    user: SuperAdminUser,
    tenant_service: TenantServiceDep,
    auth_service: AuthServiceDep,
) -> TenantResponse:
    """Create a new tenant, with its admin account when one is given."""
    if data.admin is not None and await auth_service.get_user_by_username(
        data.admin.username
    ):
        raise handle_auth_error(UserExistsError())

    try:
        tenant = await tenant_service.create_tenant(data)
    except TenantError as e:
        raise handle_tenant_error(e) from e

    response = tenant_service.to_response(tenant)
    if data.admin is None:
        return response

    try:
        admin = await auth_service.register_user(
            RegisterRequest(**data.admin.model_dump(), tenant_id=tenant.id),
            role=UserRole.ADMIN,
        )
    except AuthError as e:
        logger.warning(
            "tenant_admin_not_created", tenant_id=str(tenant.id), error=e.message
        )
        raise handle_auth_error(e) from e

    response.admin_id = admin.id
    return response
