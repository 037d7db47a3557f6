"""Activity log API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Query, status

from src.auth.dependencies import AdminUser, CurrentUser

from .dependencies import ActivityServiceDep
from .models import ActivityLog
from .schemas import ActivityLogResponse, CreateActivityLogRequest


router = APIRouter(prefix="/api/activity-logs", tags=["activity"])

LimitQuery = Annotated[int, Query(ge=1, le=500)]


@router.get(
    "/user",
    response_model=list[ActivityLogResponse],
    summary="My activity",
)
async def list_my_activity(
    user: CurrentUser,
    activity_service: ActivityServiceDep,
    limit: LimitQuery = 100,
) -> list[ActivityLogResponse]:
    """The caller's activity, newest first."""
    logs = await activity_service.list_user_logs(user.id, limit)
    return [ActivityLogResponse.model_validate(log) for log in logs]


@router.get(
    "/tenant",
    response_model=list[ActivityLogResponse],
    summary="Tenant activity (admin)",
)
async def list_tenant_activity(
    user: AdminUser,
    activity_service: ActivityServiceDep,
    limit: LimitQuery = 100,
) -> list[ActivityLogResponse]:
    """All activity in the caller's tenant, newest first."""
    logs = await activity_service.list_tenant_logs(user.tenant_id, limit)
    return [ActivityLogResponse.model_validate(log) for log in logs]


@router.post(
    "",
    response_model=ActivityLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record activity",
)
async def create_activity_log(
    data: CreateActivityLogRequest,
    user: CurrentUser,
    activity_service: ActivityServiceDep,
) -> ActivityLogResponse:
    """Record an activity for the caller."""
    log = await activity_service.record(
        ActivityLog(
            tenant_id=user.tenant_id,
            user_id=user.id,
            activity_type=data.activity_type.value,
            resource_id=data.resource_id,
            resource_type=data.resource_type,
        )
    )
    return ActivityLogResponse.model_validate(log)
