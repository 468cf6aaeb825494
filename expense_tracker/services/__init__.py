"""
Business logic behind the resource endpoints.

Services raise ServiceError subclasses and never build HTTP responses.
"""

from expense_tracker.services.accounts import AccountService
from expense_tracker.services.budgets import BudgetService
from expense_tracker.services.categories import CategoryService
from expense_tracker.services.expenses import ExpenseService

__all__ = ["AccountService", "BudgetService", "CategoryService", "ExpenseService"]
