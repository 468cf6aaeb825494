"""
Expense endpoints.

Every call is bounded by the caller's scope: its own rows, plus its
employees' rows for owners and admins.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.auth.access import AccessScope
from expense_tracker.auth.dependencies import get_access_scope
from expense_tracker.core.database import get_db
from expense_tracker.models.budget import BudgetPeriod
from expense_tracker.schemas.common import MessageResponse, SuccessResponse
from expense_tracker.schemas.expense import (
    ExpenseCreate,
    ExpenseList,
    ExpenseResponse,
    ExpenseStatistics,
    ExpenseUpdate,
)
from expense_tracker.services.expenses import ExpenseService

router = APIRouter()


def get_expense_service(db: AsyncSession = Depends(get_db)) -> ExpenseService:
    return ExpenseService(db)


@router.post(
    "",
    name="expenses:create",
    status_code=201,
    response_model=SuccessResponse[ExpenseResponse],
)
async def create_expense(
    body: ExpenseCreate,
    scope: AccessScope = Depends(get_access_scope),
    service: ExpenseService = Depends(get_expense_service),
):
    """
    Record an expense.

    Owners and admins may set `userId` to record it for one of their
    employees; any other target is refused with 403.
    """
    expense = await service.create(scope, body.model_dump(exclude_unset=True))
    return SuccessResponse(
        message="Expense created successfully",
        data=ExpenseResponse.model_validate(expense),
    )


@router.get("", name="expenses:list", response_model=SuccessResponse[ExpenseList])
async def list_expenses(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    category_id: Optional[int] = Query(default=None, alias="categoryId"),
    period: Optional[BudgetPeriod] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    scope: AccessScope = Depends(get_access_scope),
    service: ExpenseService = Depends(get_expense_service),
):
    """Expenses in scope, newest first, with their total and count."""
    result = await service.list_expenses(
        scope,
        user_id=user_id,
        category_id=category_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
    )
    return SuccessResponse(data=ExpenseList(
        expenses=[ExpenseResponse.model_validate(e) for e in result["expenses"]],
        total=result["total"],
        count=result["count"],
    ))


@router.get("/statistics", name="expenses:statistics", response_model=SuccessResponse[ExpenseStatistics])
async def expense_statistics(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    scope: AccessScope = Depends(get_access_scope),
    service: ExpenseService = Depends(get_expense_service),
):
    stats = await service.statistics(
        scope, user_id=user_id, start_date=start_date, end_date=end_date
    )
    return SuccessResponse(data=ExpenseStatistics(**stats))


@router.get("/{expense_id}", name="expenses:get", response_model=SuccessResponse[ExpenseResponse])
async def get_expense(
    expense_id: int,
    scope: AccessScope = Depends(get_access_scope),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.get(scope, expense_id)
    return SuccessResponse(data=ExpenseResponse.model_validate(expense))


@router.patch("/{expense_id}", name="expenses:update", response_model=SuccessResponse[ExpenseResponse])
async def update_expense(
    expense_id: int,
    body: ExpenseUpdate,
    scope: AccessScope = Depends(get_access_scope),
    service: ExpenseService = Depends(get_expense_service),
):
    expense = await service.update(scope, expense_id, body.model_dump(exclude_unset=True))
    return SuccessResponse(
        message="Expense updated successfully",
        data=ExpenseResponse.model_validate(expense),
    )


@router.delete("/{expense_id}", name="expenses:delete", response_model=MessageResponse)
async def delete_expense(
    expense_id: int,
    scope: AccessScope = Depends(get_access_scope),
    service: ExpenseService = Depends(get_expense_service),
):
    await service.delete(scope, expense_id)
    return MessageResponse(message="Expense deleted successfully")
