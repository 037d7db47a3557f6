"""Batch service layer.

Business logic for:
- Batch CRUD with unique batch codes (generated when absent)
- Batch membership, single and bulk, capped by max_students
- Enrolling new members in the batch's course
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Final
from uuid import UUID

import structlog

from src.batches.models import Batch, BatchEnrollment
from src.batches.schemas import (
    BatchEnrollmentResponse,
    BatchResponse,
    CreateBatchRequest,
    UpdateBatchRequest,
)
from src.core.datetime_utils import utcnow
from src.progress.service import AlreadyEnrolledError


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.progress.service import ProgressService

logger = structlog.get_logger(__name__)

COURSE_TAG_WIDTH: Final = 3
TIME_SUFFIX_DIGITS: Final = 6
GENERATED_CODE_ATTEMPTS: Final = 3


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class BatchError(Exception):
    """Base batch error."""

    def __init__(self, message: str, code: str = "batch_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class BatchNotFoundError(BatchError):
    def __init__(self, message: str = "Batch not found"):
        super().__init__(message, "batch_not_found")


class BatchAccessDeniedError(BatchError):
    def __init__(self, message: str = "Access denied to this batch"):
        super().__init__(message, "access_denied")


class BatchCodeTakenError(BatchError):
    def __init__(self, message: str = "Batch code already exists"):
        super().__init__(message, "batch_code_taken")


class BatchFullError(BatchError):
    def __init__(self, message: str = "Batch is full"):
        super().__init__(message, "batch_full")


class AlreadyInBatchError(BatchError):
    def __init__(self, message: str = "User already in this batch"):
        super().__init__(message, "already_in_batch")


class MembershipNotFoundError(BatchError):
    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "membership_not_found")


def generate_batch_code(course_id: UUID, now: datetime | None = None) -> str:
    """`B` + zero-padded course tag + the last digits of the epoch millis.

    Examples:
        >>> from datetime import UTC
        >>> generate_batch_code(UUID(int=7), datetime(2024, 1, 1, tzinfo=UTC))
        'B007200000'
    """
    millis = int((now or utcnow()).timestamp() * 1000)
    course_tag = str(course_id.int % 10**COURSE_TAG_WIDTH).zfill(COURSE_TAG_WIDTH)
    return f"B{course_tag}{str(millis)[-TIME_SUFFIX_DIGITS:]}"


@dataclass
class MembershipResult:
    """Outcome of adding users to a batch."""

    created: list[BatchEnrollment] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)
    course_enrolled: list[UUID] = field(default_factory=list)


# ==============================================================================
# Batch Service
# ==============================================================================


class BatchService:
    """Service for batches and their members."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        progress_service: "ProgressService",
    ):
        self.session = session
        self.keyspace = keyspace
        self.progress_service = progress_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_batch = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.batches WHERE id = ?"
        )
        self._list_by_tenant = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.batches WHERE tenant_id = ?"
        )
        self._list_by_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.batches WHERE course_id = ?"
        )
        self._insert_batch = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.batches (
                id, tenant_id, name, batch_code, course_id, trainer_id,
                start_date, batch_time, description, max_students, is_active,
                created_by, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_batch = self.session.prepare(f"""
            UPDATE {self.keyspace}.batches
            SET name = ?, batch_code = ?, trainer_id = ?, start_date = ?,
                batch_time = ?, description = ?, max_students = ?, is_active = ?
            WHERE id = ?
        """)
        self._delete_batch = self.session.prepare(
            f"DELETE FROM {self.keyspace}.batches WHERE id = ?"
        )

        self._claim_code = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.batches_by_code (batch_code, batch_id)
            VALUES (?, ?) IF NOT EXISTS
        """)
        self._release_code = self.session.prepare(
            f"DELETE FROM {self.keyspace}.batches_by_code WHERE batch_code = ?"
        )

        self._insert_member = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.batch_enrollments (
                batch_id, user_id, id, tenant_id, enrolled_at, enrolled_by, status
            ) VALUES (?, ?, ?, ?, ?, ?, ?) IF NOT EXISTS
        """)
        self._list_members = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.batch_enrollments WHERE batch_id = ?"
        )
        self._list_memberships = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.batch_enrollments WHERE user_id = ?"
        )
        self._get_membership = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.batch_enrollments WHERE id = ?"
        )
        self._delete_member = self.session.prepare(
            f"DELETE FROM {self.keyspace}.batch_enrollments "
            "WHERE batch_id = ? AND user_id = ?"
        )

    # ==========================================================================
    # Batch Codes
    # ==========================================================================

    async def _claim(self, batch_code: str, batch_id: UUID) -> bool:
        result = await self.session.aexecute(self._claim_code, [batch_code, batch_id])
        return result.was_applied

    async def _claim_generated(self, course_id: UUID, batch_id: UUID) -> str:
        now = utcnow()
        for attempt in range(GENERATED_CODE_ATTEMPTS):
            code = generate_batch_code(course_id, now + timedelta(milliseconds=attempt))
            if await self._claim(code, batch_id):
                return code
        raise BatchCodeTakenError("Could not generate a unique batch code")

    # ==========================================================================
    # Batch Operations
    # ==========================================================================

    async def create_batch(
        self, tenant_id: UUID, data: CreateBatchRequest, creator_id: UUID
    ) -> Batch:
        """Create a batch. The caller has checked course and trainer.

        Raises:
            BatchCodeTakenError: If an explicit code is already in use
        """
        batch = Batch(
            tenant_id=tenant_id,
            name=data.name,
            batch_code="",
            course_id=data.course_id,
            trainer_id=data.trainer_id,
            start_date=data.start_date,
            batch_time=data.batch_time,
            description=data.description,
            max_students=data.max_students,
            is_active=data.is_active,
            created_by=creator_id,
        )

        if data.batch_code:
            if not await self._claim(data.batch_code, batch.id):
                raise BatchCodeTakenError
            batch.batch_code = data.batch_code
        else:
            batch.batch_code = await self._claim_generated(batch.course_id, batch.id)

        await self.session.aexecute(
            self._insert_batch,
            [
                batch.id,
                batch.tenant_id,
                batch.name,
                batch.batch_code,
                batch.course_id,
                batch.trainer_id,
                batch.start_date,
                batch.batch_time,
                batch.description,
                batch.max_students,
                batch.is_active,
                batch.created_by,
                batch.created_at,
            ],
        )
        logger.info(
            "batch_created", batch_id=str(batch.id), batch_code=batch.batch_code
        )
        return batch

    async def get_batch(self, batch_id: UUID) -> Batch | None:
        """Get batch by ID."""
        result = await self.session.aexecute(self._get_batch, [batch_id])
        row = result.one()
        return Batch.from_row(row) if row else None

    async def require_tenant_batch(self, batch_id: UUID, tenant_id: UUID) -> Batch:
        """Get a batch of the given tenant.

        Raises:
            BatchNotFoundError: If the batch does not exist
            BatchAccessDeniedError: If it belongs to another tenant
        """
        batch = await self.get_batch(batch_id)
        if batch is None:
            raise BatchNotFoundError
        if batch.tenant_id != tenant_id:
            raise BatchAccessDeniedError
        return batch

    async def list_tenant_batches(self, tenant_id: UUID) -> list[Batch]:
        """Batches of a tenant, newest first."""
        rows = await self.session.aexecute(self._list_by_tenant, [tenant_id])
        return sorted(
            (Batch.from_row(r) for r in rows), key=lambda b: b.created_at, reverse=True
        )

    async def list_course_batches(self, course_id: UUID) -> list[Batch]:
        """Batches of a course, newest first."""
        rows = await self.session.aexecute(self._list_by_course, [course_id])
        return sorted(
            (Batch.from_row(r) for r in rows), key=lambda b: b.created_at, reverse=True
        )

    async def update_batch(self, batch: Batch, data: UpdateBatchRequest) -> Batch:
        """Update batch fields that are set.

        Raises:
            BatchCodeTakenError: If a new code is already in use
        """
        if data.batch_code is not None and data.batch_code != batch.batch_code:
            if not await self._claim(data.batch_code, batch.id):
                raise BatchCodeTakenError
            await self.session.aexecute(self._release_code, [batch.batch_code])
            batch.batch_code = data.batch_code

        if data.name is not None:
            batch.name = data.name.strip()
        if data.trainer_id is not None:
            batch.trainer_id = data.trainer_id
        if data.start_date is not None:
            batch.start_date = data.start_date
        if data.batch_time is not None:
            batch.batch_time = data.batch_time
        if data.description is not None:
            batch.description = data.description
        if data.max_students is not None:
            batch.max_students = data.max_students
        if data.is_active is not None:
            batch.is_active = data.is_active

        await self.session.aexecute(
            self._update_batch,
            [
                batch.name,
                batch.batch_code,
                batch.trainer_id,
                batch.start_date,
                batch.batch_time,
                batch.description,
                batch.max_students,
                batch.is_active,
                batch.id,
            ],
        )
        logger.info("batch_updated", batch_id=str(batch.id))
        return batch

    async def delete_batch(self, batch: Batch) -> None:
        """Delete a batch, its members and its code claim."""
        for member in await self.list_batch_members(batch.id):
            await self.session.aexecute(
                self._delete_member, [member.batch_id, member.user_id]
            )
        await self.session.aexecute(self._release_code, [batch.batch_code])
        await self.session.aexecute(self._delete_batch, [batch.id])
        logger.info("batch_deleted", batch_id=str(batch.id))

    # ==========================================================================
    # Membership Operations
    # ==========================================================================

    async def list_batch_members(self, batch_id: UUID) -> list[BatchEnrollment]:
        rows = await self.session.aexecute(self._list_members, [batch_id])
        return [BatchEnrollment.from_row(r) for r in rows]

    async def list_user_memberships(self, user_id: UUID) -> list[BatchEnrollment]:
        rows = await self.session.aexecute(self._list_memberships, [user_id])
        return sorted(
            (BatchEnrollment.from_row(r) for r in rows),
            key=lambda m: m.enrolled_at,
            reverse=True,
        )

    async def require_tenant_membership(
        self, membership_id: UUID, tenant_id: UUID
    ) -> BatchEnrollment:
        """Get a batch membership of the given tenant.

        Raises:
            MembershipNotFoundError: If it does not exist
            BatchAccessDeniedError: If it belongs to another tenant
        """
        result = await self.session.aexecute(self._get_membership, [membership_id])
        row = result.one()
        if row is None:
            raise MembershipNotFoundError
        membership = BatchEnrollment.from_row(row)
        if membership.tenant_id != tenant_id:
            raise BatchAccessDeniedError("Access denied to this enrollment")
        return membership

    async def add_members(
        self, batch: Batch, user_ids: list[UUID], enrolled_by: UUID
    ) -> MembershipResult:
        """Add users to a batch and enroll them in its course.

        Users already in the batch are skipped. The caller has checked that
        every user belongs to the batch's tenant.

        Raises:
            BatchFullError: If the new members would exceed max_students
        """
        members = await self.list_batch_members(batch.id)
        present = {m.user_id for m in members}
        outcome = MembershipResult()

        candidates = []
        for user_id in dict.fromkeys(user_ids):
            if user_id in present:
                outcome.skipped.append(user_id)
            else:
                candidates.append(user_id)

        if batch.max_students is not None:
            active = sum(1 for m in members if m.is_active)
            if active + len(candidates) > batch.max_students:
                raise BatchFullError(
                    f"Batch is full: {active} of {batch.max_students} places taken"
                )

        for user_id in candidates:
            member = BatchEnrollment(
                tenant_id=batch.tenant_id,
                batch_id=batch.id,
                user_id=user_id,
                enrolled_by=enrolled_by,
            )
            result = await self.session.aexecute(
                self._insert_member,
                [
                    member.batch_id,
                    member.user_id,
                    member.id,
                    member.tenant_id,
                    member.enrolled_at,
                    member.enrolled_by,
                    member.status,
                ],
            )
            if not result.was_applied:
                outcome.skipped.append(user_id)
                continue
            outcome.created.append(member)

            if await self._enroll_in_course(batch, user_id):
                outcome.course_enrolled.append(user_id)

        logger.info(
            "batch_members_added",
            batch_id=str(batch.id),
            created=len(outcome.created),
            skipped=len(outcome.skipped),
            course_enrolled=len(outcome.course_enrolled),
        )
        return outcome

    async def _enroll_in_course(self, batch: Batch, user_id: UUID) -> bool:
        if await self.progress_service.is_enrolled(user_id, batch.course_id):
            return False
        try:
            await self.progress_service.enroll_user(
                batch.tenant_id, user_id, batch.course_id
            )
        except AlreadyEnrolledError:
            return False
        return True

    async def add_member(
        self, batch: Batch, user_id: UUID, enrolled_by: UUID
    ) -> tuple[BatchEnrollment, bool]:
        """Add one user to a batch.

        Returns:
            (membership, enrolled_in_course)

        Raises:
            AlreadyInBatchError: If the user is already a member
            BatchFullError: If the batch is full
        """
        outcome = await self.add_members(batch, [user_id], enrolled_by)
        if not outcome.created:
            raise AlreadyInBatchError
        return outcome.created[0], bool(outcome.course_enrolled)

    async def remove_member(self, membership: BatchEnrollment) -> None:
        await self.session.aexecute(
            self._delete_member, [membership.batch_id, membership.user_id]
        )
        logger.info(
            "batch_member_removed",
            batch_id=str(membership.batch_id),
            user_id=str(membership.user_id),
        )

    # ==========================================================================
    # Response Helpers
    # ==========================================================================

    def to_response(self, batch: Batch) -> BatchResponse:
        return BatchResponse.model_validate(batch)

    def membership_response(self, membership: BatchEnrollment) -> BatchEnrollmentResponse:
        return BatchEnrollmentResponse.model_validate(membership)
