"""Budget service. A budget belongs to the caller alone."""

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.auth.access import Principal
from expense_tracker.core.errors import ConflictError, NotFoundError
from expense_tracker.core.logging import get_logger
from expense_tracker.models.budget import Budget, BudgetPeriod

logger = get_logger(__name__)

BUDGET_NOT_FOUND = "Budget not found"


class BudgetService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def current(self, principal: Principal, period: Optional[BudgetPeriod] = None) -> Optional[Budget]:
        """Most recent budget of the caller, optionally for one period."""
        query = select(Budget).where(Budget.user_id == principal.id)
        if period is not None:
            query = query.where(Budget.period == period.value)
        result = await self.db.execute(
            query.order_by(Budget.created_at.desc(), Budget.id.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    async def create_or_update(
        self,
        principal: Principal,
        amount,
        period: BudgetPeriod = BudgetPeriod.MONTHLY,
    ) -> Budget:
        result = await self.db.execute(
            select(Budget).where(Budget.user_id == principal.id, Budget.period == period.value)
        )
        budget = result.scalar_one_or_none()
        if budget is None:
            budget = Budget(amount=amount, period=period.value, user_id=principal.id)
            self.db.add(budget)
        else:
            budget.amount = amount

        await self.db.commit()
        await self.db.refresh(budget)
        logger.info("budget_saved", budget_id=budget.id, period=period.value, owner_id=principal.id)
        return budget

    async def _owned(self, principal: Principal, budget_id: int) -> Budget:
        budget = await self.db.get(Budget, budget_id)
        if budget is None or budget.user_id != principal.id:
            raise NotFoundError(BUDGET_NOT_FOUND)
        return budget

    async def update(self, principal: Principal, budget_id: int, changes: Dict[str, Any]) -> Budget:
        """
        Raises:
            NotFoundError: unknown budget or one owned by someone else
            ConflictError: moving the budget onto a period that already has one
        """
        budget = await self._owned(principal, budget_id)
        if changes.get("amount") is not None:
            budget.amount = changes["amount"]
        if changes.get("period") is not None:
            budget.period = BudgetPeriod(changes["period"]).value

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError("A budget for this period already exists") from exc
        await self.db.refresh(budget)
        return budget

    async def delete(self, principal: Principal, budget_id: int) -> None:
        budget = await self._owned(principal, budget_id)
        await self.db.delete(budget)
        await self.db.commit()
        logger.info("budget_deleted", budget_id=budget_id, owner_id=principal.id)
