"""Tests for auth permissions."""

import pytest

from src.auth.permissions import (
    ROLE_HIERARCHY,
    RoleKind,
    UserRole,
    can_assign_role,
    dashboard_path,
    get_role_level,
    has_permission,
    is_admin,
    is_superadmin,
    role_kind,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        assert UserRole.STUDENT.value == "student"
        assert UserRole.ADMIN.value == "admin"
        assert UserRole.SUPERADMIN.value == "superadmin"

    def test_all_roles_have_levels(self) -> None:
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestRoleKind:
    """Every role tag folds onto exactly one kind."""

    @pytest.mark.parametrize(
        "role,expected",
        [
            (UserRole.STUDENT, RoleKind.STUDENT),
            (UserRole.ADMIN, RoleKind.ADMIN),
            (UserRole.SUPERADMIN, RoleKind.ADMIN),
            ("superadmin", RoleKind.ADMIN),
        ],
    )
    def test_role_kind(self, role: UserRole | str, expected: RoleKind) -> None:
        assert role_kind(role) is expected

    def test_unknown_tag_raises(self) -> None:
        with pytest.raises(ValueError):
            role_kind("instructor")

    def test_superadmin_behaves_as_admin(self) -> None:
        assert is_admin(UserRole.SUPERADMIN) is True
        assert dashboard_path(UserRole.SUPERADMIN) == "/admin/dashboard"

    def test_dashboard_paths(self) -> None:
        assert dashboard_path("admin") == "/admin/dashboard"
        assert dashboard_path(UserRole.STUDENT) == "/student/dashboard"


class TestGetRoleLevel:
    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (UserRole.STUDENT, 0),
            (UserRole.ADMIN, 1),
            (UserRole.SUPERADMIN, 2),
            ("admin", 1),
        ],
    )
    def test_levels(self, role: UserRole | str, expected_level: int) -> None:
        assert get_role_level(role) == expected_level

    def test_invalid_role_returns_zero(self) -> None:
        assert get_role_level("invalid") == 0


class TestHasPermission:
    def test_superadmin_has_all_permissions(self) -> None:
        for role in UserRole:
            assert has_permission(UserRole.SUPERADMIN, role) is True

    def test_student_cannot_reach_admin(self) -> None:
        assert has_permission(UserRole.STUDENT, UserRole.ADMIN) is False
        assert has_permission(UserRole.STUDENT, UserRole.STUDENT) is True


class TestCanAssignRole:
    def test_student_assigns_nothing(self) -> None:
        for role in UserRole:
            assert can_assign_role(UserRole.STUDENT, role) is False

    def test_admin_cannot_grant_superadmin(self) -> None:
        assert can_assign_role(UserRole.ADMIN, UserRole.STUDENT) is True
        assert can_assign_role(UserRole.ADMIN, UserRole.ADMIN) is True
        assert can_assign_role(UserRole.ADMIN, UserRole.SUPERADMIN) is False

    def test_superadmin_grants_superadmin(self) -> None:
        assert can_assign_role(UserRole.SUPERADMIN, UserRole.SUPERADMIN) is True
        assert is_superadmin("superadmin") is True
