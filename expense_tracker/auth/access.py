"""
Access-control resolver for owned resources (expenses, budgets, accounts).

Rules, in order:
1. A row owned by the caller is always accessible.
2. An owner/admin may access rows owned by its registered subordinates.
3. An owner/admin naming an explicit target (create on behalf of, filter by)
   must name itself or a subordinate; anything else is a permission error.
4. Everything else is rejected.

Direct access to a row outside the scope is reported as not-found, while an
out-of-scope explicit target is reported as forbidden.
"""

from dataclasses import dataclass, field
from typing import Optional

from expense_tracker.core.errors import PermissionDeniedError
from expense_tracker.models.account import PRIVILEGED_ROLES, Role
from expense_tracker.repositories.accounts import AccountStore


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as asserted by its access token."""

    id: int
    email: str
    role: Role
    first_name: str = ""
    last_name: str = ""

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES


@dataclass(frozen=True)
class AccessScope:
    caller_id: int
    role: Role
    subordinate_ids: frozenset[int] = field(default_factory=frozenset)

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def owner_ids(self) -> frozenset[int]:
        """Every owner id whose rows the caller may see."""
        if not self.is_privileged:
            return frozenset({self.caller_id})
        return self.subordinate_ids | {self.caller_id}

    def can_access(self, resource_owner_id: int) -> bool:
        if resource_owner_id == self.caller_id:
            return True
        return self.is_privileged and resource_owner_id in self.subordinate_ids

    def resolve_target(self, target_id: Optional[int], action: str = "act for") -> int:
        """
        Owner id for a new row: the caller, or an explicit in-scope target.

        Raises:
            PermissionDeniedError: if the target is outside the caller's scope
        """
        if target_id is None or target_id == self.caller_id:
            return self.caller_id
        if self.is_privileged and target_id in self.subordinate_ids:
            return target_id
        raise PermissionDeniedError(f"You do not have permission to {action} this user")

    def filter_owner_ids(self, target_id: Optional[int] = None) -> frozenset[int]:
        """Inclusion filter for list queries, narrowed to `target_id` when given."""
        if target_id is None:
            return self.owner_ids
        return frozenset({self.resolve_target(target_id, action="view data for")})


def scope_for(principal: Principal, subordinate_ids=()) -> AccessScope:
    return AccessScope(
        caller_id=principal.id,
        role=principal.role,
        subordinate_ids=frozenset(subordinate_ids),
    )


async def load_scope(store: AccountStore, principal: Principal) -> AccessScope:
    """Build the caller's scope; subordinates are only looked up for owner/admin."""
    if not principal.is_privileged:
        return scope_for(principal)
    return scope_for(principal, await store.subordinate_ids(principal.id))
