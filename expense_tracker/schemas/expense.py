"""
Expense schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import Field, field_serializer, field_validator

from expense_tracker.schemas.category import CategorySummary
from expense_tracker.schemas.common import CamelModel


class ExpenseCreate(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    category_id: Optional[int] = None
    # Owner/admin may record an expense for one of their employees
    user_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title must not be blank")
        return v


class ExpenseUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    date: Optional[datetime] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    category_id: Optional[int] = None


class ExpenseResponse(CamelModel):
    id: int
    title: str
    amount: Decimal
    date: datetime
    description: Optional[str] = None
    category_id: Optional[int] = None
    category: Optional[CategorySummary] = None
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)


class ExpenseList(CamelModel):
    expenses: List[ExpenseResponse]
    total: float
    count: int


class CategoryBreakdown(CamelModel):
    category_id: Optional[int] = None
    name: str
    total: float
    count: int


class ExpenseStatistics(CamelModel):
    total: float
    count: int
    average: float
    by_category: List[CategoryBreakdown]
    by_user: Dict[int, float]
