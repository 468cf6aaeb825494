"""
Pydantic schemas for API request/response validation.
"""

from expense_tracker.schemas.auth import AuthResponse, LoginRequest, SignupRequest
from expense_tracker.schemas.account import AccountResponse, AccountUpdate, EmployeeList
from expense_tracker.schemas.budget import BudgetCreate, BudgetResponse, BudgetUpdate
from expense_tracker.schemas.category import (
    CategoryCreate,
    CategoryResponse,
    CategorySummary,
    CategoryUpdate,
)
from expense_tracker.schemas.common import (
    CamelModel,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
    SuccessResponse,
)
from expense_tracker.schemas.expense import (
    ExpenseCreate,
    ExpenseList,
    ExpenseResponse,
    ExpenseStatistics,
    ExpenseUpdate,
)

__all__ = [
    "AuthResponse",
    "LoginRequest",
    "SignupRequest",
    "AccountResponse",
    "AccountUpdate",
    "EmployeeList",
    "BudgetCreate",
    "BudgetResponse",
    "BudgetUpdate",
    "CategoryCreate",
    "CategoryResponse",
    "CategorySummary",
    "CategoryUpdate",
    "CamelModel",
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse",
    "SuccessResponse",
    "ExpenseCreate",
    "ExpenseList",
    "ExpenseResponse",
    "ExpenseStatistics",
    "ExpenseUpdate",
]
