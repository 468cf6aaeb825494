"""
Budget endpoints. A caller only ever sees and changes its own budgets.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.auth.access import Principal
from expense_tracker.auth.dependencies import get_current_principal
from expense_tracker.core.database import get_db
from expense_tracker.models.budget import BudgetPeriod
from expense_tracker.schemas.budget import BudgetCreate, BudgetResponse, BudgetUpdate
from expense_tracker.schemas.common import MessageResponse, SuccessResponse
from expense_tracker.services.budgets import BudgetService

router = APIRouter()


def get_budget_service(db: AsyncSession = Depends(get_db)) -> BudgetService:
    return BudgetService(db)


@router.get("", name="budgets:get", response_model=SuccessResponse[Optional[BudgetResponse]])
async def get_budget(
    period: Optional[BudgetPeriod] = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    service: BudgetService = Depends(get_budget_service),
):
    """Latest budget of the caller, or null when none is set."""
    budget = await service.current(principal, period)
    return SuccessResponse(data=BudgetResponse.model_validate(budget) if budget else None)


@router.post("", name="budgets:save", status_code=201, response_model=SuccessResponse[BudgetResponse])
async def save_budget(
    body: BudgetCreate,
    principal: Principal = Depends(get_current_principal),
    service: BudgetService = Depends(get_budget_service),
):
    """Create the budget for a period, or replace its amount if one exists."""
    budget = await service.create_or_update(principal, body.amount, body.period)
    return SuccessResponse(data=BudgetResponse.model_validate(budget))


@router.put("/{budget_id}", name="budgets:update", response_model=SuccessResponse[BudgetResponse])
async def update_budget(
    budget_id: int,
    body: BudgetUpdate,
    principal: Principal = Depends(get_current_principal),
    service: BudgetService = Depends(get_budget_service),
):
    budget = await service.update(principal, budget_id, body.model_dump(exclude_unset=True))
    return SuccessResponse(data=BudgetResponse.model_validate(budget))


@router.delete("/{budget_id}", name="budgets:delete", response_model=MessageResponse)
async def delete_budget(
    budget_id: int,
    principal: Principal = Depends(get_current_principal),
    service: BudgetService = Depends(get_budget_service),
):
    await service.delete(principal, budget_id)
    return MessageResponse(message="Budget deleted successfully")
