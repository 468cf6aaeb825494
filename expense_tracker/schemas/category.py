"""
Expense category schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from expense_tracker.schemas.common import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class CategorySummary(CamelModel):
    id: int
    name: str


class CategoryResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    expense_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
