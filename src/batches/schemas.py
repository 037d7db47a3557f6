"""Pydantic schemas for batches and batch membership."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.batches.models import BatchEnrollmentStatus


BATCH_CODE_PATTERN = r"^[A-Za-z0-9_-]+$"


class CreateBatchRequest(BaseModel):
    """Batch creation request. A missing code is generated."""

    name: str = Field(..., min_length=1, max_length=200)
    batch_code: str | None = Field(
        None, min_length=2, max_length=50, pattern=BATCH_CODE_PATTERN
    )
    course_id: UUID
    trainer_id: UUID
    start_date: date | None = None
    batch_time: str | None = Field(None, max_length=50, description='e.g. "10:00-12:00"')
    description: str | None = Field(None, max_length=5000)
    max_students: int | None = Field(None, ge=1)
    is_active: bool = True


class UpdateBatchRequest(BaseModel):
    """Batch update request."""

    name: str | None = Field(None, min_length=1, max_length=200)
    batch_code: str | None = Field(
        None, min_length=2, max_length=50, pattern=BATCH_CODE_PATTERN
    )
    trainer_id: UUID | None = None
    start_date: date | None = None
    batch_time: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=5000)
    max_students: int | None = Field(None, ge=1)
    is_active: bool | None = None


class BatchResponse(BaseModel):
    """Batch response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    name: str
    batch_code: str
    course_id: UUID
    trainer_id: UUID
    start_date: date | None = None
    batch_time: str | None = None
    description: str | None = None
    max_students: int | None = None
    is_active: bool = True
    created_by: UUID | None = None
    created_at: datetime


class CreateBatchEnrollmentRequest(BaseModel):
    batch_id: UUID
    user_id: UUID


class BulkBatchEnrollmentRequest(BaseModel):
    batch_id: UUID
    user_ids: list[UUID] = Field(..., min_length=1)


class BatchEnrollmentResponse(BaseModel):
    """Batch membership response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    batch_id: UUID
    user_id: UUID
    enrolled_at: datetime
    enrolled_by: UUID | None = None
    status: BatchEnrollmentStatus


class BatchEnrollmentWithBatchResponse(BatchEnrollmentResponse):
    batch: BatchResponse | None = None


class BulkBatchEnrollmentResponse(BaseModel):
    """Outcome of a bulk enrollment."""

    created: list[BatchEnrollmentResponse]
    skipped_user_ids: list[UUID] = Field(default_factory=list)
    course_enrolled_user_ids: list[UUID] = Field(default_factory=list)
