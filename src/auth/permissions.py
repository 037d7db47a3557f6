"""Role-based access control.

Stored role tags:
- SUPERADMIN (level 2): administers tenants, can grant superadmin
- ADMIN (level 1): manages everything inside their tenant
- STUDENT (level 0): learns

Branching on behaviour never compares tags. `role_kind()` folds every tag
onto the closed variant RoleKind {ADMIN, STUDENT} and callers `match` on it
exhaustively.
"""

from enum import Enum
from typing import NoReturn


class UserRole(str, Enum):
    """Role tag stored on the user record."""

    STUDENT = "student"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class RoleKind(str, Enum):
    """Closed variant used for all admin-vs-student dispatch."""

    ADMIN = "admin"
    STUDENT = "student"


ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.STUDENT: 0,
    UserRole.ADMIN: 1,
    UserRole.SUPERADMIN: 2,
}


def assert_never(value: NoReturn) -> NoReturn:
    """Fail loudly when a match over a closed variant misses a case."""
    raise AssertionError(f"Unhandled variant: {value!r}")


def parse_role(role: UserRole | str) -> UserRole:
    """Coerce a stored tag into UserRole.

    Raises:
        ValueError: If the tag is unknown
    """
    return role if isinstance(role, UserRole) else UserRole(role)


def role_kind(role: UserRole | str) -> RoleKind:
    """Fold a role tag onto the {ADMIN, STUDENT} variant.

    Examples:
        >>> role_kind("superadmin")
        <RoleKind.ADMIN: 'admin'>
        >>> role_kind(UserRole.STUDENT)
        <RoleKind.STUDENT: 'student'>
    """
    match parse_role(role):
        case UserRole.ADMIN | UserRole.SUPERADMIN:
            return RoleKind.ADMIN
        case UserRole.STUDENT:
            return RoleKind.STUDENT
        case _ as unreachable:
            assert_never(unreachable)


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role, 0 for unknown tags."""
    try:
        return ROLE_HIERARCHY[parse_role(role)]
    except ValueError:
        return 0


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.SUPERADMIN, UserRole.ADMIN)
        True
        >>> has_permission("student", "admin")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def can_assign_role(actor_role: UserRole | str, target_role: UserRole | str) -> bool:
    """Check if actor may set `target_role` on a user of their tenant.

    Admins may hand out student and admin. Only a superadmin may grant
    superadmin.
    """
    match role_kind(actor_role):
        case RoleKind.STUDENT:
            return False
        case RoleKind.ADMIN:
            return get_role_level(actor_role) >= get_role_level(target_role)
        case _ as unreachable:
            assert_never(unreachable)


def is_admin(role: UserRole | str) -> bool:
    """Check if role belongs to the ADMIN kind (admin or superadmin)."""
    return role_kind(role) is RoleKind.ADMIN


def is_superadmin(role: UserRole | str) -> bool:
    """Check if role is SUPERADMIN."""
    return parse_role(role) is UserRole.SUPERADMIN


def dashboard_path(role: UserRole | str) -> str:
    """Landing page of the client shell for a role."""
    match role_kind(role):
        case RoleKind.ADMIN:
            return "/admin/dashboard"
        case RoleKind.STUDENT:
            return "/student/dashboard"
        case _ as unreachable:
            assert_never(unreachable)
