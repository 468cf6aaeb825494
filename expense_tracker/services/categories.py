"""Expense categories. Shared by every account; only owners and admins write."""

from typing import Any, Dict, List, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from expense_tracker.core.errors import ConflictError, NotFoundError
from expense_tracker.core.logging import get_logger
from expense_tracker.models.expense import Expense, ExpenseCategory

logger = get_logger(__name__)


class CategoryService:

    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_counts(self):
        return (
            select(ExpenseCategory, func.count(Expense.id))
            .outerjoin(Expense, Expense.category_id == ExpenseCategory.id)
            .group_by(ExpenseCategory.id)
            .execution_options(populate_existing=True)
        )

    async def list_categories(self) -> List[Tuple[ExpenseCategory, int]]:
        result = await self.db.execute(self._with_counts().order_by(ExpenseCategory.name))
        return [(category, count) for category, count in result.all()]

    async def get(self, category_id: int) -> Tuple[ExpenseCategory, int]:
        result = await self.db.execute(
            self._with_counts().where(ExpenseCategory.id == category_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundError(f"Category with ID {category_id} not found")
        return row[0], row[1]

    async def _name_taken(self, name: str) -> bool:
        result = await self.db.execute(
            select(ExpenseCategory.id).where(ExpenseCategory.name == name)
        )
        return result.scalar_one_or_none() is not None

    async def _commit(self, name: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError(f'Category with name "{name}" already exists') from exc

    async def create(self, name: str, description=None) -> Tuple[ExpenseCategory, int]:
        if await self._name_taken(name):
            raise ConflictError(f'Category with name "{name}" already exists')
        category = ExpenseCategory(name=name, description=description)
        self.db.add(category)
        await self._commit(name)
        logger.info("category_created", category_id=category.id)
        return await self.get(category.id)

    async def update(self, category_id: int, changes: Dict[str, Any]) -> Tuple[ExpenseCategory, int]:
        category, _ = await self.get(category_id)
        if changes.get("name") is None:
            changes.pop("name", None)
        name = changes.get("name")
        if name and name != category.name and await self._name_taken(name):
            raise ConflictError(f'Category with name "{name}" already exists')

        for key, value in changes.items():
            setattr(category, key, value)
        await self._commit(name or category.name)
        return await self.get(category_id)

    async def delete(self, category_id: int) -> None:
        category, expense_count = await self.get(category_id)
        if expense_count > 0:
            raise ConflictError(
                f"Cannot delete category. It is being used by {expense_count} expense(s). "
                "Please reassign or delete those expenses first."
            )
        await self.db.delete(category)
        await self.db.commit()
        logger.info("category_deleted", category_id=category_id)
