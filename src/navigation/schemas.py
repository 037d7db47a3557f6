"""Pydantic schemas for navigation and dashboards."""

from pydantic import BaseModel, ConfigDict

from src.auth.permissions import RoleKind

from .guard import RouteAction


class RouteDecisionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    action: RouteAction
    location: str | None = None


class MenuItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    path: str
    icon: str


class MenuSectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str | None = None
    items: list[MenuItemResponse]


class MenuResponse(BaseModel):
    kind: RoleKind
    sections: list[MenuSectionResponse]


class AdminDashboardResponse(BaseModel):
    """Tenant-wide counters for the admin landing page."""

    kind: RoleKind = RoleKind.ADMIN
    students: int
    courses: int
    exams: int
    batches: int
    pending_reviews: int


class StudentDashboardResponse(BaseModel):
    """Learning summary for the student landing page."""

    kind: RoleKind = RoleKind.STUDENT
    enrolled_courses: int
    average_progress: int
    completed_courses: int
    pending_attempts: int
    reviewed_attempts: int
