"""Tests for the client route guard."""

import pytest

from src.auth.permissions import UserRole
from src.navigation.guard import RouteAction, RouteDecision, guard_route, resolve_path
from src.navigation.routes import ADMIN_ROLES, ROUTES, STUDENT_ROLES, find_route


class TestGuardRoute:
    def test_anonymous_goes_to_auth(self) -> None:
        decision = guard_route(None, ADMIN_ROLES, "/admin/exams")
        assert decision == RouteDecision(RouteAction.REDIRECT, "/auth")

    def test_student_on_admin_route_goes_home(self) -> None:
        decision = guard_route(UserRole.STUDENT, ADMIN_ROLES, "/admin/exams")
        assert decision == RouteDecision(RouteAction.REDIRECT, "/student/dashboard")

    def test_admin_on_student_route_goes_home(self) -> None:
        decision = guard_route(UserRole.ADMIN, STUDENT_ROLES, "/student/results")
        assert decision == RouteDecision(RouteAction.REDIRECT, "/admin/dashboard")

    def test_allowed_role_renders(self) -> None:
        decision = guard_route(UserRole.SUPERADMIN, ADMIN_ROLES, "/admin/grading")
        assert decision == RouteDecision(RouteAction.RENDER, "/admin/grading")


class TestResolvePath:
    @pytest.mark.parametrize(
        "path",
        [
            "/",
            "/admin/dashboard",
            "/admin/courses/6f1c/progress",
            "/admin/students/42",
            "/admin/batches/7",
            "/admin/profile",
        ],
    )
    def test_admin_paths(self, path: str) -> None:
        assert resolve_path(UserRole.ADMIN, path).action is RouteAction.RENDER
        assert resolve_path(UserRole.STUDENT, path) == RouteDecision(
            RouteAction.REDIRECT, "/student/dashboard"
        )

    @pytest.mark.parametrize(
        "path",
        [
            "/student/dashboard",
            "/student/my-courses",
            "/student/my-courses/abc",
            "/student/upcoming-exams",
            "/student/results",
            "/student/profile",
        ],
    )
    def test_student_paths(self, path: str) -> None:
        assert resolve_path(UserRole.STUDENT, path).action is RouteAction.RENDER
        assert resolve_path(None, path) == RouteDecision(RouteAction.REDIRECT, "/auth")

    @pytest.mark.parametrize(
        "path",
        ["/nope", "/admin", "/admin/students/1/extra", "/student/ai-assistant"],
    )
    def test_unknown_paths(self, path: str) -> None:
        for role in (None, UserRole.ADMIN, UserRole.STUDENT):
            assert resolve_path(role, path).action is RouteAction.NOT_FOUND

    def test_auth_page_public(self) -> None:
        assert resolve_path(None, "/auth") == RouteDecision(RouteAction.RENDER, "/auth")

    def test_auth_page_redirects_signed_in_users(self) -> None:
        assert resolve_path(UserRole.STUDENT, "/auth") == RouteDecision(
            RouteAction.REDIRECT, "/student/dashboard"
        )
        assert resolve_path(UserRole.ADMIN, "/auth/") == RouteDecision(
            RouteAction.REDIRECT, "/admin/dashboard"
        )

    def test_query_string_ignored(self) -> None:
        assert find_route("/admin/exams?tab=open") is not None


def test_every_route_has_roles() -> None:
    for route in ROUTES:
        assert route.roles in (ADMIN_ROLES, STUDENT_ROLES)
