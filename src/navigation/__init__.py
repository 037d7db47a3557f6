"""Navigation module.

Provides:
- Client route table and route guard
- Sidebar menus per role kind
- Dashboard summaries
"""

from .guard import RouteAction, RouteDecision, guard_route, resolve_path
from .routes import ROUTES, Route, find_route, menu_for


__all__ = [
    "ROUTES",
    "Route",
    "RouteAction",
    "RouteDecision",
    "find_route",
    "guard_route",
    "menu_for",
    "resolve_path",
]
