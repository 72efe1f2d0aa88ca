"""
Role-based access guard.

Decides whether the current identity may open a view. The same rules
back the API dependencies in `core.auth` and the client-side session
layer, so a front end and the backend always agree on where a user
lands.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

LOGIN_VIEW = "/login"
HOME_VIEW = "/"

# Default landing view per role. Unknown roles land on HOME_VIEW.
LANDING_VIEWS: dict[str, str] = {
    "admin": "/admin/dashboard",
    "auditor": "/auditor/tasks",
    "contributor": "/contributor/collect",
}


class HasRole(Protocol):
    role: str


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    redirect_to: str | None = None
    found: bool = True


ALLOW = AccessDecision(allowed=True)
NOT_FOUND = AccessDecision(allowed=False, found=False)


@dataclass(frozen=True)
class View:
    """
    A navigable view.

    `protected` views go through the guard; public ones always render.
    An empty `required_roles` on a protected view means "any signed-in
    user".
    """

    name: str
    path: str
    required_roles: frozenset[str] = field(default_factory=frozenset)
    protected: bool = True


VIEWS: tuple[View, ...] = (
    View("home", HOME_VIEW, protected=False),
    View("login", LOGIN_VIEW, protected=False),
    View("public_prices", "/prices", protected=False),
    View("admin_dashboard", "/admin/dashboard", frozenset({"admin"})),
    View("admin_products", "/admin/products", frozenset({"admin"})),
    View("admin_markets", "/admin/markets", frozenset({"admin"})),
    View("admin_tasks", "/admin/tasks", frozenset({"admin"})),
    View("admin_users", "/admin/users", frozenset({"admin"})),
    View("auditor_tasks", "/auditor/tasks", frozenset({"auditor"})),
    View("contributor_collect", "/contributor/collect", frozenset({"contributor"})),
)

_VIEWS_BY_PATH: dict[str, View] = {view.path: view for view in VIEWS}


def landing_view_for(role: str | None) -> str:
    """Default view for a role; HOME_VIEW for anything unknown."""
    if role is None:
        return HOME_VIEW
    return LANDING_VIEWS.get(role, HOME_VIEW)


def evaluate_access(
    is_authenticated: bool,
    current_user: HasRole | None,
    required_roles: Iterable[str] = (),
) -> AccessDecision:
    """
    Decide whether a protected view may render.

      - not authenticated                  -> redirect to LOGIN_VIEW
      - role not in a non-empty role set   -> redirect to the role's landing view
      - otherwise                          -> render

    The redirect for an authenticated user depends only on their role,
    never on the view that was requested.
    """
    if not is_authenticated:
        return AccessDecision(allowed=False, redirect_to=LOGIN_VIEW)

    roles = frozenset(required_roles)
    role = current_user.role if current_user is not None else None

    if roles and role not in roles:
        return AccessDecision(allowed=False, redirect_to=landing_view_for(role))

    return ALLOW


def find_view(path: str) -> View | None:
    """Look up a view by path, ignoring a trailing slash."""
    if path != HOME_VIEW:
        path = path.rstrip("/") or HOME_VIEW
    return _VIEWS_BY_PATH.get(path)


def resolve_view(
    path: str,
    is_authenticated: bool,
    current_user: HasRole | None,
) -> AccessDecision:
    """
    Guard decision for navigating to `path`.

    Unknown paths resolve to NOT_FOUND (the not-found page renders).
    """
    view = find_view(path)
    if view is None:
        return NOT_FOUND
    if not view.protected:
        return ALLOW
    return evaluate_access(is_authenticated, current_user, view.required_roles)
