"""
Per-route access policies.

One explicit record per named route, consulted by the route guard.
Routes that are not listed require an authenticated caller of any role.
"""

from dataclasses import dataclass
from typing import Optional

from expense_tracker.models.account import PRIVILEGED_ROLES, Role


@dataclass(frozen=True)
class RoutePolicy:
    public: bool = False
    roles: Optional[frozenset[Role]] = None      # None: any role

    def allows(self, role: Role) -> bool:
        return self.roles is None or role in self.roles


PUBLIC = RoutePolicy(public=True)
AUTHENTICATED = RoutePolicy()
OWNER_OR_ADMIN = RoutePolicy(roles=PRIVILEGED_ROLES)

ROUTE_POLICIES: dict[str, RoutePolicy] = {
    # Service and documentation
    "root": PUBLIC,
    "health": PUBLIC,
    "openapi": PUBLIC,
    "swagger_ui_html": PUBLIC,
    "swagger_ui_redirect": PUBLIC,
    "redoc_html": PUBLIC,
    # Authentication; refresh checks its own (refresh) bearer token
    "auth:signup": PUBLIC,
    "auth:login": PUBLIC,
    "auth:refresh": PUBLIC,
    "auth:oauth_start": PUBLIC,
    "auth:oauth_callback": PUBLIC,
    "auth:logout": AUTHENTICATED,
    # Users
    "users:profile": AUTHENTICATED,
    "users:list": OWNER_OR_ADMIN,
    "users:get": OWNER_OR_ADMIN,
    "users:get_by_email": OWNER_OR_ADMIN,
    "users:update": OWNER_OR_ADMIN,
    "users:delete": OWNER_OR_ADMIN,
    "users:employees": OWNER_OR_ADMIN,
    "users:assign_employee": OWNER_OR_ADMIN,
    "users:unassign_employee": OWNER_OR_ADMIN,
    # Expense categories
    "categories:create": OWNER_OR_ADMIN,
    "categories:update": OWNER_OR_ADMIN,
    "categories:delete": OWNER_OR_ADMIN,
}


def policy_for(route_name: str, policies: Optional[dict[str, RoutePolicy]] = None) -> RoutePolicy:
    return (policies if policies is not None else ROUTE_POLICIES).get(route_name, AUTHENTICATED)
