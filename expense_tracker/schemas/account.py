"""
Account-related schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from expense_tracker.models.account import Role
from expense_tracker.schemas.common import CamelModel


class AccountResponse(CamelModel):
    """Account as exposed over the API. Never carries hashes."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AccountUpdate(CamelModel):
    """Partial update; only fields that are set are written."""

    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    role: Optional[Role] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else None


class EmployeeList(CamelModel):
    employees: List[AccountResponse]
    count: int
