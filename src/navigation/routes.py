"""Client route table and sidebar menus.

Patterns use `:name` for a single path segment, e.g. `/admin/students/:id`.
"""

from dataclasses import dataclass

from src.auth.permissions import RoleKind, UserRole, assert_never


AUTH_PATH = "/auth"

ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPERADMIN})
STUDENT_ROLES = frozenset({UserRole.STUDENT})


@dataclass(frozen=True)
class Route:
    """A client route and the role tags allowed to render it."""

    pattern: str
    roles: frozenset[UserRole]

    def matches(self, path: str) -> bool:
        expected = _segments(self.pattern)
        actual = _segments(path)
        if len(expected) != len(actual):
            return False
        return all(
            (e.startswith(":") and a) or e == a
            for e, a in zip(expected, actual, strict=True)
        )


def _segments(path: str) -> list[str]:
    return [s for s in path.split("?", 1)[0].split("/") if s]


ROUTES: tuple[Route, ...] = (
    Route("/", ADMIN_ROLES),
    Route("/admin/dashboard", ADMIN_ROLES),
    Route("/admin/courses", ADMIN_ROLES),
    Route("/admin/courses/:id/progress", ADMIN_ROLES),
    Route("/admin/exams", ADMIN_ROLES),
    Route("/admin/students", ADMIN_ROLES),
    Route("/admin/students/:id", ADMIN_ROLES),
    Route("/admin/batches", ADMIN_ROLES),
    Route("/admin/batches/:id", ADMIN_ROLES),
    Route("/admin/reports", ADMIN_ROLES),
    Route("/admin/grading", ADMIN_ROLES),
    Route("/admin/profile", ADMIN_ROLES),
    Route("/student/dashboard", STUDENT_ROLES),
    Route("/student/my-courses", STUDENT_ROLES),
    Route("/student/my-courses/:id", STUDENT_ROLES),
    Route("/student/upcoming-exams", STUDENT_ROLES),
    Route("/student/results", STUDENT_ROLES),
    Route("/student/profile", STUDENT_ROLES),
)


def find_route(path: str) -> Route | None:
    """First route whose pattern matches `path`, None for unknown paths."""
    for route in ROUTES:
        if route.matches(path):
            return route
    return None


# ==============================================================================
# Sidebar
# ==============================================================================


@dataclass(frozen=True)
class MenuItem:
    label: str
    path: str
    icon: str


@dataclass(frozen=True)
class MenuSection:
    title: str | None
    items: tuple[MenuItem, ...]


ADMIN_MENU: tuple[MenuSection, ...] = (
    MenuSection(
        "Management",
        (
            MenuItem("Dashboard", "/admin/dashboard", "layout-dashboard"),
            MenuItem("Courses", "/admin/courses", "book-open"),
            MenuItem("Exams", "/admin/exams", "clipboard-list"),
            MenuItem("Students", "/admin/students", "users"),
            MenuItem("Batches", "/admin/batches", "layers"),
            MenuItem("Reports", "/admin/reports", "bar-chart"),
        ),
    ),
    MenuSection(
        "Account",
        (MenuItem("Profile", "/admin/profile", "user"),),
    ),
)

STUDENT_MENU: tuple[MenuSection, ...] = (
    MenuSection(
        "Learning",
        (
            MenuItem("Dashboard", "/student/dashboard", "layout-dashboard"),
            MenuItem("My Courses", "/student/my-courses", "book-open"),
            MenuItem("Upcoming Exams", "/student/upcoming-exams", "calendar"),
            MenuItem("Results", "/student/results", "award"),
        ),
    ),
    MenuSection(
        "Account",
        (MenuItem("Profile", "/student/profile", "user"),),
    ),
)


def menu_for(kind: RoleKind) -> tuple[MenuSection, ...]:
    match kind:
        case RoleKind.ADMIN:
            return ADMIN_MENU
        case RoleKind.STUDENT:
            return STUDENT_MENU
        case _ as unreachable:
            assert_never(unreachable)
