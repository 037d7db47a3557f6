"""Route guard for the client shell.

Resolves a client path for an optional caller into one of three outcomes:
render it, redirect elsewhere, or show the not-found page.
"""

from dataclasses import dataclass
from enum import Enum

from src.auth.permissions import UserRole, dashboard_path

from .routes import AUTH_PATH, find_route


class RouteAction(str, Enum):
    RENDER = "render"
    REDIRECT = "redirect"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class RouteDecision:
    action: RouteAction
    location: str | None = None


def guard_route(
    role: UserRole | None,
    roles: frozenset[UserRole],
    path: str,
) -> RouteDecision:
    """Decide what a protected route shows.

    Anonymous callers go to the auth page; callers whose role is not in
    `roles` go to their own dashboard.

    Examples:
        >>> guard_route(None, frozenset({UserRole.ADMIN}), "/admin/exams")
        RouteDecision(action=<RouteAction.REDIRECT: 'redirect'>, location='/auth')
    """
    if role is None:
        return RouteDecision(RouteAction.REDIRECT, AUTH_PATH)
    if role not in roles:
        return RouteDecision(RouteAction.REDIRECT, dashboard_path(role))
    return RouteDecision(RouteAction.RENDER, path)


def resolve_path(role: UserRole | None, path: str) -> RouteDecision:
    """Resolve any client path against the route table."""
    if path.rstrip("/") == AUTH_PATH:
        if role is None:
            return RouteDecision(RouteAction.RENDER, AUTH_PATH)
        return RouteDecision(RouteAction.REDIRECT, dashboard_path(role))

    route = find_route(path)
    if route is None:
        return RouteDecision(RouteAction.NOT_FOUND)
    return guard_route(role, route.roles, path)
