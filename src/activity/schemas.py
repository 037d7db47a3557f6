"""Pydantic schemas for activity logs."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import ActivityType


class CreateActivityLogRequest(BaseModel):
    """Activity recorded explicitly by the client."""

    activity_type: ActivityType
    resource_id: UUID | None = None
    resource_type: str | None = Field(None, max_length=50)


class ActivityLogResponse(BaseModel):
    """Activity log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    user_id: UUID
    activity_type: str
    resource_id: UUID | None = None
    resource_type: str | None = None
    timestamp: datetime
