"""
Account management: signup, scoped user administration and ownership links.

Ownership is a single edge per account (`accounts.owner_id`). An owner or
admin sees itself plus the accounts pointing at it; admins see everyone.
"""

from typing import Any, Dict, List, Optional

from starlette.concurrency import run_in_threadpool

from expense_tracker.auth.access import AccessScope, Principal
from expense_tracker.auth.password import hash_password
from expense_tracker.core.errors import ConflictError, NotFoundError, PermissionDeniedError
from expense_tracker.core.logging import get_logger
from expense_tracker.models.account import Account, Role
from expense_tracker.repositories.accounts import AccountStore

logger = get_logger(__name__)

USER_NOT_FOUND = "User not found"


class AccountService:

    def __init__(self, store: AccountStore):
        self.store = store

    async def signup(self, email: str, password: str, first_name: str = "", last_name: str = "") -> Account:
        """
        Create a local account with the least-privileged role.

        Raises:
            ConflictError: if the email is already registered
        """
        if await self.store.find_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        password_hash = await run_in_threadpool(hash_password, password)
        account = await self.store.create(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=Role.USER,
        )
        logger.info("account_created", account_id=account.id, source="signup")
        return account

    async def profile(self, principal: Principal) -> Account:
        account = await self.store.find_by_id(principal.id)
        if account is None:
            raise NotFoundError(USER_NOT_FOUND)
        return account

    @staticmethod
    def _visible(principal: Principal, scope: AccessScope, account: Account) -> bool:
        return principal.role is Role.ADMIN or scope.can_access(account.id)

    async def list_accounts(self, principal: Principal, scope: AccessScope) -> List[Account]:
        if principal.role is Role.ADMIN:
            return await self.store.list_all()
        return await self.store.list_by_ids(scope.owner_ids)

    async def get(self, principal: Principal, scope: AccessScope, account_id: int) -> Account:
        account = await self.store.find_by_id(account_id)
        if account is None or not self._visible(principal, scope, account):
            raise NotFoundError(USER_NOT_FOUND)
        return account

    async def get_by_email(self, principal: Principal, scope: AccessScope, email: str) -> Account:
        account = await self.store.find_by_email(email)
        if account is None or not self._visible(principal, scope, account):
            raise NotFoundError(f"User with email {email} not found")
        return account

    async def update(
        self,
        principal: Principal,
        scope: AccessScope,
        account_id: int,
        changes: Dict[str, Any],
    ) -> Account:
        """
        Apply a partial profile update.

        Raises:
            NotFoundError: unknown account, or one outside the caller's scope
            PermissionDeniedError: a non-admin changing a role
            ConflictError: the new email belongs to another account
        """
        account = await self.get(principal, scope, account_id)
        changes = {k: v for k, v in changes.items() if v is not None}

        if "role" in changes and changes["role"] != account.role and principal.role is not Role.ADMIN:
            raise PermissionDeniedError("Only admins can change roles")

        email = changes.get("email")
        if email and email != account.email and await self.store.find_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        if changes:
            await self.store.update(account_id, **changes)
            logger.info("account_updated", account_id=account_id, fields=sorted(changes))
        return await self.get(principal, scope, account_id)

    async def delete(self, principal: Principal, scope: AccessScope, account_id: int) -> None:
        await self.get(principal, scope, account_id)
        await self.store.delete(account_id)
        logger.info("account_deleted", account_id=account_id, by=principal.id)

    async def employees(self, principal: Principal) -> List[Account]:
        return await self.store.find_where_owner_id(principal.id)

    async def assign_employee(self, principal: Principal, employee_id: int) -> Account:
        """
        Make `employee_id` a subordinate of the caller.

        Raises:
            NotFoundError: unknown employee
            ConflictError: self-assignment, an employee that already has an
                owner, or an assignment that would close a loop
        """
        if employee_id == principal.id:
            raise ConflictError("Cannot assign yourself as an employee")

        owner = await self.store.find_by_id(principal.id)
        if owner is None:
            raise NotFoundError(USER_NOT_FOUND)
        employee = await self.store.find_by_id(employee_id)
        if employee is None:
            raise NotFoundError(f"User with ID {employee_id} not found")

        if employee.owner_id == principal.id:
            raise ConflictError("Employee is already assigned to this owner")
        if employee.owner_id is not None:
            raise ConflictError("Employee is already assigned to another owner")
        if await self._owner_chain_contains(owner, employee_id):
            raise ConflictError("Assignment would create an ownership cycle")

        await self.store.update(employee_id, owner_id=principal.id)
        logger.info("employee_assigned", owner_id=principal.id, employee_id=employee_id)
        return await self.store.find_by_id(employee_id)

    async def _owner_chain_contains(self, account: Account, target_id: int) -> bool:
        """Whether `target_id` is reachable by following owner links up from `account`."""
        seen = {account.id}
        owner_id = account.owner_id
        while owner_id is not None and owner_id not in seen:
            if owner_id == target_id:
                return True
            seen.add(owner_id)
            current = await self.store.find_by_id(owner_id)
            owner_id = current.owner_id if current is not None else None
        return False

    async def unassign_employee(self, principal: Principal, employee_id: int) -> None:
        employee: Optional[Account] = await self.store.find_by_id(employee_id)
        if employee is None or employee.owner_id != principal.id:
            raise ConflictError("Employee is not assigned to this owner")

        await self.store.update(employee_id, owner_id=None)
        logger.info("employee_unassigned", owner_id=principal.id, employee_id=employee_id)
