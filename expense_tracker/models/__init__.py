"""
Expense Tracker Database Models

This module exports all SQLAlchemy models for the application.
"""

from expense_tracker.models.account import Account, Role, PRIVILEGED_ROLES
from expense_tracker.models.expense import Expense, ExpenseCategory
from expense_tracker.models.budget import Budget, BudgetPeriod

__all__ = [
    # Account models
    "Account",
    "Role",
    "PRIVILEGED_ROLES",
    # Expense models
    "Expense",
    "ExpenseCategory",
    # Budget models
    "Budget",
    "BudgetPeriod",
]
