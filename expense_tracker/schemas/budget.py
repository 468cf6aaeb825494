"""
Budget schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_serializer

from expense_tracker.models.budget import BudgetPeriod
from expense_tracker.schemas.common import CamelModel


class BudgetCreate(CamelModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    period: BudgetPeriod = BudgetPeriod.MONTHLY


class BudgetUpdate(CamelModel):
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    period: Optional[BudgetPeriod] = None


class BudgetResponse(CamelModel):
    id: int
    amount: Decimal
    period: BudgetPeriod
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> float:
        return float(amount)
