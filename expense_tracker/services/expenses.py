"""
Expense service.

Every query is bounded by the caller's AccessScope before any other filter
is applied. Rows outside the scope are reported as not found; an explicit
out-of-scope `user_id` is a permission error raised by the scope itself.
"""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.auth.access import AccessScope
from expense_tracker.core.errors import NotFoundError, ServiceError
from expense_tracker.core.logging import get_logger
from expense_tracker.models.budget import BudgetPeriod
from expense_tracker.models.expense import Expense, ExpenseCategory

logger = get_logger(__name__)

EXPENSE_NOT_FOUND = "Expense not found"
NON_NULLABLE_FIELDS = ("title", "amount", "date")


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def period_range(period: BudgetPeriod, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Inclusive [start, end] of the current day, week (Monday to Sunday),
    month or year, in UTC.
    """
    now = as_utc(now or datetime.now(timezone.utc))
    today = now.date()

    if period is BudgetPeriod.DAILY:
        first, last = today, today
    elif period is BudgetPeriod.WEEKLY:
        first = today - timedelta(days=today.weekday())
        last = first + timedelta(days=6)
    elif period is BudgetPeriod.MONTHLY:
        first = today.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        last = next_month - timedelta(days=1)
    else:
        first = today.replace(month=1, day=1)
        last = today.replace(month=12, day=31)

    return (
        datetime.combine(first, time.min, tzinfo=timezone.utc),
        datetime.combine(last, time.max, tzinfo=timezone.utc),
    )


class ExpenseService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is None:
            return
        if await self.db.get(ExpenseCategory, category_id) is None:
            raise NotFoundError(f"Category with ID {category_id} not found")

    async def _load(self, expense_id: int) -> Optional[Expense]:
        result = await self.db.execute(
            select(Expense)
            .where(Expense.id == expense_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def create(self, scope: AccessScope, data: Dict[str, Any]) -> Expense:
        """
        Record an expense for the caller, or for `user_id` when an
        owner/admin acts for one of its employees.
        """
        owner_id = scope.resolve_target(data.pop("user_id", None), action="create expenses for")
        await self._check_category(data.get("category_id"))

        expense = Expense(
            title=data["title"],
            amount=data["amount"],
            date=as_utc(data.get("date") or datetime.now(timezone.utc)),
            description=data.get("description"),
            category_id=data.get("category_id"),
            user_id=owner_id,
        )
        self.db.add(expense)
        await self.db.commit()
        logger.info("expense_created", expense_id=expense.id, owner_id=owner_id, by=scope.caller_id)
        return await self._load(expense.id)

    def _scoped_query(
        self,
        scope: AccessScope,
        user_id: Optional[int] = None,
        category_id: Optional[int] = None,
        period: Optional[BudgetPeriod] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        owner_ids = scope.filter_owner_ids(user_id)
        conditions = [Expense.user_id.in_(sorted(owner_ids))]

        if category_id is not None:
            conditions.append(Expense.category_id == category_id)
        if period is not None:
            start, end = period_range(period)
            conditions.extend([Expense.date >= start, Expense.date <= end])
        if start_date is not None:
            conditions.append(Expense.date >= as_utc(start_date))
        if end_date is not None:
            conditions.append(Expense.date <= as_utc(end_date))
        if start_date and end_date and as_utc(start_date) > as_utc(end_date):
            raise ServiceError("startDate must not be after endDate")
        return conditions

    async def list_expenses(self, scope: AccessScope, **filters: Any) -> Dict[str, Any]:
        """Expenses in scope, newest first, with their sum and count."""
        conditions = self._scoped_query(scope, **filters)
        result = await self.db.execute(
            select(Expense)
            .where(*conditions)
            .order_by(Expense.date.desc(), Expense.id.desc())
            .execution_options(populate_existing=True)
        )
        expenses: List[Expense] = list(result.unique().scalars().all())
        total = sum((e.amount for e in expenses), Decimal("0"))
        return {
            "expenses": expenses,
            "total": round(float(total), 2),
            "count": len(expenses),
        }

    async def statistics(
        self,
        scope: AccessScope,
        user_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        conditions = self._scoped_query(
            scope, user_id=user_id, start_date=start_date, end_date=end_date
        )

        totals = await self.db.execute(
            select(func.coalesce(func.sum(Expense.amount), 0), func.count(Expense.id))
            .where(*conditions)
        )
        total, count = totals.one()
        total = round(float(total), 2)

        per_category = await self.db.execute(
            select(
                Expense.category_id,
                ExpenseCategory.name,
                func.sum(Expense.amount),
                func.count(Expense.id),
            )
            .outerjoin(ExpenseCategory, Expense.category_id == ExpenseCategory.id)
            .where(*conditions)
            .group_by(Expense.category_id, ExpenseCategory.name)
            .order_by(func.sum(Expense.amount).desc())
        )
        per_user = await self.db.execute(
            select(Expense.user_id, func.sum(Expense.amount))
            .where(*conditions)
            .group_by(Expense.user_id)
        )

        return {
            "total": total,
            "count": count,
            "average": round(total / count, 2) if count else 0.0,
            "by_category": [
                {
                    "category_id": category_id,
                    "name": name or "Uncategorized",
                    "total": round(float(amount), 2),
                    "count": n,
                }
                for category_id, name, amount, n in per_category.all()
            ],
            "by_user": {uid: round(float(amount), 2) for uid, amount in per_user.all()},
        }

    async def get(self, scope: AccessScope, expense_id: int) -> Expense:
        expense = await self._load(expense_id)
        if expense is None or not scope.can_access(expense.user_id):
            raise NotFoundError(EXPENSE_NOT_FOUND)
        return expense

    async def update(self, scope: AccessScope, expense_id: int, changes: Dict[str, Any]) -> Expense:
        expense = await self.get(scope, expense_id)
        changes = {
            k: v for k, v in changes.items()
            if v is not None or k not in NON_NULLABLE_FIELDS
        }
        if "category_id" in changes:
            await self._check_category(changes["category_id"])
        if changes.get("date") is not None:
            changes["date"] = as_utc(changes["date"])

        for key, value in changes.items():
            setattr(expense, key, value)
        await self.db.commit()
        logger.info("expense_updated", expense_id=expense_id, by=scope.caller_id)
        return await self._load(expense_id)

    async def delete(self, scope: AccessScope, expense_id: int) -> None:
        expense = await self.get(scope, expense_id)
        await self.db.delete(expense)
        await self.db.commit()
        logger.info("expense_deleted", expense_id=expense_id, by=scope.caller_id)
