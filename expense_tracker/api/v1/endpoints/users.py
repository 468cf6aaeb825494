"""
User management endpoints.

Owners and admins manage accounts within their scope: admins see every
account, owners see themselves and their employees.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from expense_tracker.auth.access import AccessScope, Principal
from expense_tracker.auth.dependencies import (
    get_access_scope,
    get_account_store,
    get_current_principal,
)
from expense_tracker.repositories.accounts import AccountStore
from expense_tracker.schemas.account import AccountResponse, AccountUpdate, EmployeeList
from expense_tracker.schemas.common import SuccessResponse
from expense_tracker.services.accounts import AccountService

router = APIRouter()


def get_account_service(store: AccountStore = Depends(get_account_store)) -> AccountService:
    return AccountService(store)


# =============================================================================
# Caller
# =============================================================================

@router.get("/profile", name="users:profile", response_model=SuccessResponse[AccountResponse])
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
):
    account = await service.profile(principal)
    return SuccessResponse(
        message="User profile retrieved successfully",
        data=AccountResponse.model_validate(account),
    )


# =============================================================================
# Employees
# =============================================================================

@router.get("/employees", name="users:employees", response_model=SuccessResponse[EmployeeList])
async def list_employees(
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
):
    employees = await service.employees(principal)
    return SuccessResponse(data=EmployeeList(
        employees=[AccountResponse.model_validate(e) for e in employees],
        count=len(employees),
    ))


@router.post(
    "/employees/{employee_id}",
    name="users:assign_employee",
    response_model=SuccessResponse[AccountResponse],
)
async def assign_employee(
    employee_id: int,
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
):
    employee = await service.assign_employee(principal, employee_id)
    return SuccessResponse(
        message="Employee assigned successfully",
        data=AccountResponse.model_validate(employee),
    )


@router.delete(
    "/employees/{employee_id}",
    name="users:unassign_employee",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def unassign_employee(
    employee_id: int,
    principal: Principal = Depends(get_current_principal),
    service: AccountService = Depends(get_account_service),
):
    await service.unassign_employee(principal, employee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# User CRUD
# =============================================================================

@router.get("", name="users:list", response_model=SuccessResponse[List[AccountResponse]])
async def list_users(
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    service: AccountService = Depends(get_account_service),
):
    accounts = await service.list_accounts(principal, scope)
    return SuccessResponse(data=[AccountResponse.model_validate(a) for a in accounts])


@router.get("/email/{email}", name="users:get_by_email", response_model=SuccessResponse[AccountResponse])
async def get_user_by_email(
    email: str,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    service: AccountService = Depends(get_account_service),
):
    account = await service.get_by_email(principal, scope, email)
    return SuccessResponse(data=AccountResponse.model_validate(account))


@router.get("/{user_id}", name="users:get", response_model=SuccessResponse[AccountResponse])
async def get_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    service: AccountService = Depends(get_account_service),
):
    account = await service.get(principal, scope, user_id)
    return SuccessResponse(data=AccountResponse.model_validate(account))


@router.patch("/{user_id}", name="users:update", response_model=SuccessResponse[AccountResponse])
async def update_user(
    user_id: int,
    body: AccountUpdate,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    service: AccountService = Depends(get_account_service),
):
    """Partial update. Only admins may change a role."""
    account = await service.update(principal, scope, user_id, body.model_dump(exclude_unset=True))
    return SuccessResponse(
        message="User updated successfully",
        data=AccountResponse.model_validate(account),
    )


@router.delete("/{user_id}", name="users:delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    principal: Principal = Depends(get_current_principal),
    scope: AccessScope = Depends(get_access_scope),
    service: AccountService = Depends(get_account_service),
):
    await service.delete(principal, scope, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
