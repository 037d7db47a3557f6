"""Tests for BatchService."""

import re
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from src.batches.models import Batch, BatchEnrollment, BatchEnrollmentStatus
from src.batches.schemas import CreateBatchRequest
from src.batches.service import (
    BatchCodeTakenError,
    BatchFullError,
    BatchService,
    generate_batch_code,
)
from src.progress.service import AlreadyEnrolledError


@pytest.fixture
def progress_service() -> MagicMock:
    service = MagicMock()
    service.is_enrolled = AsyncMock(return_value=False)
    service.enroll_user = AsyncMock()
    return service


@pytest.fixture
def batch_service(mock_session, progress_service) -> BatchService:
    return BatchService(mock_session, "learnhub", progress_service)


@pytest.fixture
def batch(tenant_id) -> Batch:
    return Batch(
        tenant_id=tenant_id,
        name="Morning cohort",
        batch_code="MORNING-1",
        course_id=uuid4(),
        trainer_id=uuid4(),
        max_students=3,
    )


def member(batch: Batch, user_id: UUID, status=BatchEnrollmentStatus.ACTIVE):
    return BatchEnrollment(
        tenant_id=batch.tenant_id,
        batch_id=batch.id,
        user_id=user_id,
        status=status.value,
    )


class TestGenerateBatchCode:
    def test_format(self) -> None:
        now = datetime(2024, 1, 1, tzinfo=UTC)
        assert generate_batch_code(UUID(int=7), now) == "B007200000"

    def test_course_tag_wraps(self) -> None:
        now = datetime(2024, 1, 1, 0, 0, 0, 123000, tzinfo=UTC)
        assert generate_batch_code(UUID(int=123456), now) == "B456200123"

    def test_shape(self) -> None:
        assert re.fullmatch(r"B\d{9}", generate_batch_code(uuid4()))


class TestCreateBatch:
    @pytest.mark.asyncio
    async def test_explicit_code_taken(
        self, batch_service, mock_session, result_factory, tenant_id
    ) -> None:
        mock_session.aexecute.return_value = result_factory(applied=False)
        data = CreateBatchRequest(
            name="Evening", batch_code="EVE-1", course_id=uuid4(), trainer_id=uuid4()
        )

        with pytest.raises(BatchCodeTakenError):
            await batch_service.create_batch(tenant_id, data, uuid4())

    @pytest.mark.asyncio
    async def test_generated_code(self, batch_service, tenant_id) -> None:
        data = CreateBatchRequest(name="Evening", course_id=uuid4(), trainer_id=uuid4())

        batch = await batch_service.create_batch(tenant_id, data, uuid4())

        assert re.fullmatch(r"B\d{9}", batch.batch_code)
        assert batch.tenant_id == tenant_id

    @pytest.mark.asyncio
    async def test_generated_code_gives_up(
        self, batch_service, mock_session, result_factory, tenant_id
    ) -> None:
        mock_session.aexecute.return_value = result_factory(applied=False)
        data = CreateBatchRequest(name="Evening", course_id=uuid4(), trainer_id=uuid4())

        with pytest.raises(BatchCodeTakenError, match="unique"):
            await batch_service.create_batch(tenant_id, data, uuid4())


class TestAddMembers:
    @pytest.mark.asyncio
    async def test_adds_and_enrolls(
        self, batch_service, batch, progress_service
    ) -> None:
        batch_service.list_batch_members = AsyncMock(return_value=[])
        users = [uuid4(), uuid4()]

        outcome = await batch_service.add_members(batch, users, uuid4())

        assert [m.user_id for m in outcome.created] == users
        assert outcome.skipped == []
        assert outcome.course_enrolled == users
        assert progress_service.enroll_user.await_count == 2

    @pytest.mark.asyncio
    async def test_skips_present_and_duplicates(self, batch_service, batch) -> None:
        present = uuid4()
        newcomer = uuid4()
        batch_service.list_batch_members = AsyncMock(
            return_value=[member(batch, present)]
        )

        outcome = await batch_service.add_members(
            batch, [present, newcomer, newcomer], uuid4()
        )

        assert [m.user_id for m in outcome.created] == [newcomer]
        assert outcome.skipped == [present]

    @pytest.mark.asyncio
    async def test_over_capacity_rejects_everything(
        self, batch_service, batch, mock_session
    ) -> None:
        batch_service.list_batch_members = AsyncMock(
            return_value=[member(batch, uuid4()), member(batch, uuid4())]
        )
        mock_session.aexecute.reset_mock()

        with pytest.raises(BatchFullError):
            await batch_service.add_members(batch, [uuid4(), uuid4()], uuid4())
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_members_free_places(self, batch_service, batch) -> None:
        batch_service.list_batch_members = AsyncMock(
            return_value=[
                member(batch, uuid4(), BatchEnrollmentStatus.DROPPED),
                member(batch, uuid4(), BatchEnrollmentStatus.DROPPED),
                member(batch, uuid4()),
            ]
        )

        outcome = await batch_service.add_members(batch, [uuid4(), uuid4()], uuid4())
        assert len(outcome.created) == 2

    @pytest.mark.asyncio
    async def test_already_enrolled_in_course(
        self, batch_service, batch, progress_service
    ) -> None:
        batch_service.list_batch_members = AsyncMock(return_value=[])
        progress_service.is_enrolled = AsyncMock(return_value=True)

        outcome = await batch_service.add_members(batch, [uuid4()], uuid4())

        assert len(outcome.created) == 1
        assert outcome.course_enrolled == []
        progress_service.enroll_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enrollment_race_is_not_an_error(
        self, batch_service, batch, progress_service
    ) -> None:
        batch_service.list_batch_members = AsyncMock(return_value=[])
        progress_service.enroll_user = AsyncMock(side_effect=AlreadyEnrolledError)

        outcome = await batch_service.add_members(batch, [uuid4()], uuid4())
        assert outcome.course_enrolled == []
