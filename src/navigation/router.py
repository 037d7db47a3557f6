"""Navigation API endpoints.

Provides routes for:
- Resolving client paths through the route guard
- Sidebar menu per role kind
- Role-dispatched dashboard summary
"""

from fastapi import APIRouter, Query

from src.auth.dependencies import CurrentUser, OptionalUser
from src.auth.permissions import RoleKind, assert_never
from src.auth.router import AuthServiceDep
from src.batches.dependencies import BatchServiceDep
from src.courses.dependencies import CourseServiceDep
from src.exams.dependencies import ExamServiceDep
from src.progress.dependencies import ProgressServiceDep

from .dashboard import admin_summary, student_summary
from .guard import resolve_path
from .routes import menu_for
from .schemas import (
    AdminDashboardResponse,
    MenuResponse,
    MenuSectionResponse,
    RouteDecisionResponse,
    StudentDashboardResponse,
)


router = APIRouter(prefix="/api", tags=["navigation"])


@router.get(
    "/navigation/resolve",
    response_model=RouteDecisionResponse,
    summary="Resolve client route",
)
async def resolve_route(
    user: OptionalUser,
    path: str = Query(..., min_length=1, max_length=500),
) -> RouteDecisionResponse:
    """Run the route guard for `path`.

    Anonymous callers are sent to `/auth`, wrong-role callers to their own
    dashboard, unknown paths answer `not_found`.
    """
    decision = resolve_path(user.role if user else None, path)
    return RouteDecisionResponse.model_validate(decision)


@router.get("/navigation/menu", response_model=MenuResponse, summary="Sidebar menu")
async def get_menu(user: CurrentUser) -> MenuResponse:
    return MenuResponse(
        kind=user.kind,
        sections=[
            MenuSectionResponse.model_validate(s) for s in menu_for(user.kind)
        ],
    )


@router.get(
    "/dashboard",
    response_model=AdminDashboardResponse | StudentDashboardResponse,
    summary="Dashboard summary",
)
async def get_dashboard(
    user: CurrentUser,
    auth_service: AuthServiceDep,
    course_service: CourseServiceDep,
    exam_service: ExamServiceDep,
    batch_service: BatchServiceDep,
    progress_service: ProgressServiceDep,
) -> AdminDashboardResponse | StudentDashboardResponse:
    match user.kind:
        case RoleKind.ADMIN:
            return await admin_summary(
                user.tenant_id, auth_service, course_service, exam_service, batch_service
            )
        case RoleKind.STUDENT:
            return await student_summary(user.id, progress_service, exam_service)
        case _ as unreachable:
            assert_never(unreachable)
