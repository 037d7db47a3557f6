"""Tests for the fire-and-forget activity writer."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.activity.models import ActivityType
from src.activity.writer import ActivityWriter


@pytest.fixture
def service() -> MagicMock:
    service = MagicMock()
    service.record_batch = AsyncMock(side_effect=lambda batch: len(batch))
    return service


def test_emit_queues(service) -> None:
    writer = ActivityWriter(service)

    assert writer.emit(uuid4(), uuid4(), ActivityType.LOGIN) is True
    assert writer.queue_length == 1
    assert writer.get_stats()["emitted"] == 1


def test_emit_accepts_string_tag(service) -> None:
    writer = ActivityWriter(service)
    assert writer.emit(uuid4(), uuid4(), "course_enroll", uuid4(), "course") is True


def test_unknown_type_dropped(service) -> None:
    writer = ActivityWriter(service)
    assert writer.emit(uuid4(), uuid4(), "teleport") is False
    assert writer.queue_length == 0


def test_full_queue_drops(service) -> None:
    writer = ActivityWriter(service, queue_size=1)

    assert writer.emit(uuid4(), uuid4(), ActivityType.LOGIN) is True
    assert writer.emit(uuid4(), uuid4(), ActivityType.LOGIN) is False
    assert writer.get_stats()["dropped"] == 1


@pytest.mark.asyncio
async def test_flush_writes_batch(service) -> None:
    writer = ActivityWriter(service)
    tenant_id = uuid4()
    writer.emit(tenant_id, uuid4(), ActivityType.QUIZ_COMPLETE, uuid4(), "lesson")
    writer.emit(tenant_id, uuid4(), ActivityType.LESSON_COMPLETE, uuid4(), "lesson")

    await writer.flush()

    (batch,), _ = service.record_batch.call_args
    assert [log.activity_type for log in batch] == ["quiz_complete", "lesson_complete"]
    assert writer.get_stats()["written"] == 2
    assert writer.queue_length == 0


@pytest.mark.asyncio
async def test_write_failure_is_contained(service) -> None:
    service.record_batch = AsyncMock(side_effect=RuntimeError("cassandra down"))
    writer = ActivityWriter(service)
    writer.emit(uuid4(), uuid4(), ActivityType.LOGIN)

    await writer.flush()

    assert writer.get_stats()["failed"] == 1


@pytest.mark.asyncio
async def test_start_stop_drains(service) -> None:
    writer = ActivityWriter(service, flush_interval=0.01)
    await writer.start()
    assert writer.is_running

    writer.emit(uuid4(), uuid4(), ActivityType.EXAM_START, uuid4(), "exam")
    await writer.stop()

    assert writer.is_running is False
    assert writer.get_stats()["written"] == 1
