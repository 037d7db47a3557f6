"""Batch API endpoints (admin only).

Provides routes for:
- Batches: CRUD, listed per tenant or per course
- Batch membership: single and bulk, with course auto-enrollment
"""

from uuid import UUID

from fastapi import APIRouter, Response, status

from src.activity.dependencies import ActivityWriterDep
from src.activity.models import ActivityType
from src.activity.writer import ActivityWriter
from src.auth.dependencies import AdminUser
from src.auth.router import AuthServiceDep, handle_auth_error
from src.auth.service import AuthError
from src.courses.dependencies import CourseServiceDep, handle_course_error
from src.courses.service import CourseError

from .dependencies import BatchServiceDep, handle_batch_error
from .models import Batch
from .schemas import (
    BatchEnrollmentResponse,
    BatchEnrollmentWithBatchResponse,
    BatchResponse,
    BulkBatchEnrollmentRequest,
    BulkBatchEnrollmentResponse,
    CreateBatchEnrollmentRequest,
    CreateBatchRequest,
    UpdateBatchRequest,
)
from .service import BatchError


router = APIRouter(prefix="/api/batches", tags=["batches"])
course_batches_router = APIRouter(prefix="/api/courses", tags=["batches"])
enrollments_router = APIRouter(prefix="/api/batch-enrollments", tags=["batches"])


def _log_course_assignments(
    activity: ActivityWriter, batch: Batch, user_ids: list[UUID]
) -> None:
    for user_id in user_ids:
        activity.emit(
            batch.tenant_id,
            user_id,
            ActivityType.COURSE_ASSIGN,
            batch.course_id,
            "course",
        )


# ==============================================================================
# Batches
# ==============================================================================


@router.get("", response_model=list[BatchResponse], summary="List batches")
async def list_batches(
    user: AdminUser,
    batch_service: BatchServiceDep,
) -> list[BatchResponse]:
    batches = await batch_service.list_tenant_batches(user.tenant_id)
    return [batch_service.to_response(b) for b in batches]


@course_batches_router.get(
    "/{course_id}/batches",
    response_model=list[BatchResponse],
    summary="List course batches",
)
async def list_course_batches(
    course_id: UUID,
    user: AdminUser,
    course_service: CourseServiceDep,
    batch_service: BatchServiceDep,
) -> list[BatchResponse]:
    try:
        course = await course_service.require_tenant_course(course_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    batches = await batch_service.list_course_batches(course.id)
    return [batch_service.to_response(b) for b in batches]


@router.get("/{batch_id}", response_model=BatchResponse, summary="Get batch")
async def get_batch(
    batch_id: UUID,
    user: AdminUser,
    batch_service: BatchServiceDep,
) -> BatchResponse:
    try:
        batch = await batch_service.require_tenant_batch(batch_id, user.tenant_id)
    except BatchError as e:
        raise handle_batch_error(e) from e
    return batch_service.to_response(batch)


@router.post(
    "",
    response_model=BatchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create batch",
)
async def create_batch(
    data: CreateBatchRequest,
    user: AdminUser,
    auth_service: AuthServiceDep,
    course_service: CourseServiceDep,
    batch_service: BatchServiceDep,
) -> BatchResponse:
    """Create a batch. Course and trainer must belong to the tenant.

    Without `batch_code` one is generated; an explicit code already in use
    answers 409.
    """
    try:
        await course_service.require_tenant_course(data.course_id, user.tenant_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    try:
        await auth_service.get_tenant_user(user, data.trainer_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    try:
        batch = await batch_service.create_batch(user.tenant_id, data, user.id)
    except BatchError as e:
        raise handle_batch_error(e) from e
    return batch_service.to_response(batch)


@router.put("/{batch_id}", response_model=BatchResponse, summary="Update batch")
async def update_batch(
    batch_id: UUID,
    data: UpdateBatchRequest,
    user: AdminUser,
    auth_service: AuthServiceDep,
    batch_service: BatchServiceDep,
) -> BatchResponse:
    if data.trainer_id is not None:
        try:
            await auth_service.get_tenant_user(user, data.trainer_id)
        except AuthError as e:
            raise handle_auth_error(e) from e

    try:
        batch = await batch_service.require_tenant_batch(batch_id, user.tenant_id)
        batch = await batch_service.update_batch(batch, data)
    except BatchError as e:
        raise handle_batch_error(e) from e
    return batch_service.to_response(batch)


@router.delete(
    "/{batch_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete batch",
)
async def delete_batch(
    batch_id: UUID,
    user: AdminUser,
    batch_service: BatchServiceDep,
) -> Response:
    try:
        batch = await batch_service.require_tenant_batch(batch_id, user.tenant_id)
    except BatchError as e:
        raise handle_batch_error(e) from e

    await batch_service.delete_batch(batch)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{batch_id}/enrollments",
    response_model=list[BatchEnrollmentResponse],
    summary="List batch members",
)
async def list_batch_enrollments(
    batch_id: UUID,
    user: AdminUser,
    batch_service: BatchServiceDep,
) -> list[BatchEnrollmentResponse]:
    try:
        batch = await batch_service.require_tenant_batch(batch_id, user.tenant_id)
    except BatchError as e:
        raise handle_batch_error(e) from e

    members = await batch_service.list_batch_members(batch.id)
    return [batch_service.membership_response(m) for m in members]


# ==============================================================================
# Batch Membership
# ==============================================================================


@enrollments_router.get(
    "/user/{user_id}",
    response_model=list[BatchEnrollmentWithBatchResponse],
    summary="List a user's batches",
)
async def list_user_batch_enrollments(
    user_id: UUID,
    user: AdminUser,
    auth_service: AuthServiceDep,
    batch_service: BatchServiceDep,
) -> list[BatchEnrollmentWithBatchResponse]:
    """Batch memberships of a user of the tenant, with their batches."""
    try:
        await auth_service.get_tenant_user(user, user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    items = []
    for membership in await batch_service.list_user_memberships(user_id):
        batch = await batch_service.get_batch(membership.batch_id)
        items.append(
            BatchEnrollmentWithBatchResponse(
                **batch_service.membership_response(membership).model_dump(),
                batch=batch_service.to_response(batch) if batch else None,
            )
        )
    return items


@enrollments_router.post(
    "",
    response_model=BatchEnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add user to batch",
)
async def create_batch_enrollment(
    data: CreateBatchEnrollmentRequest,
    user: AdminUser,
    auth_service: AuthServiceDep,
    batch_service: BatchServiceDep,
    activity: ActivityWriterDep,
) -> BatchEnrollmentResponse:
    """Add one user of the tenant to a batch and enroll them in its course."""
    try:
        batch = await batch_service.require_tenant_batch(data.batch_id, user.tenant_id)
    except BatchError as e:
        raise handle_batch_error(e) from e

    try:
        await auth_service.get_tenant_user(user, data.user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    try:
        membership, course_enrolled = await batch_service.add_member(
            batch, data.user_id, user.id
        )
    except BatchError as e:
        raise handle_batch_error(e) from e

    if course_enrolled:
        _log_course_assignments(activity, batch, [data.user_id])
    return batch_service.membership_response(membership)


@enrollments_router.post(
    "/bulk",
    response_model=BulkBatchEnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add users to batch",
)
async def create_batch_enrollments_bulk(
    data: BulkBatchEnrollmentRequest,
    user: AdminUser,
    auth_service: AuthServiceDep,
    batch_service: BatchServiceDep,
    activity: ActivityWriterDep,
) -> BulkBatchEnrollmentResponse:
    """Add users of the tenant to a batch.

    Members already present are skipped. New members are enrolled in the
    batch's course. Exceeding `max_students` rejects the whole request.
    """
    try:
        batch = await batch_service.require_tenant_batch(data.batch_id, user.tenant_id)
    except BatchError as e:
        raise handle_batch_error(e) from e

    try:
        for user_id in data.user_ids:
            await auth_service.get_tenant_user(user, user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e

    try:
        outcome = await batch_service.add_members(batch, data.user_ids, user.id)
    except BatchError as e:
        raise handle_batch_error(e) from e

    _log_course_assignments(activity, batch, outcome.course_enrolled)
    return BulkBatchEnrollmentResponse(
        created=[batch_service.membership_response(m) for m in outcome.created],
        skipped_user_ids=outcome.skipped,
        course_enrolled_user_ids=outcome.course_enrolled,
    )


@enrollments_router.delete(
    "/{membership_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove user from batch",
)
async def delete_batch_enrollment(
    membership_id: UUID,
    user: AdminUser,
    batch_service: BatchServiceDep,
) -> Response:
    try:
        membership = await batch_service.require_tenant_membership(
            membership_id, user.tenant_id
        )
    except BatchError as e:
        raise handle_batch_error(e) from e

    await batch_service.remove_member(membership)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
