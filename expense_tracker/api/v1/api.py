"""
API Router configuration.

Aggregates all v1 API endpoints with proper tagging and prefixes.
Access rules per route live in expense_tracker.auth.policies, keyed by the
route names given here.
"""

from fastapi import APIRouter

from expense_tracker.api.v1.endpoints import auth, budgets, categories, expenses, users

api_router = APIRouter()

# Authentication (signup/login/refresh/OAuth are public)
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["authentication"]
)

# User management and employee assignment
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"]
)

api_router.include_router(
    expenses.router,
    prefix="/expenses",
    tags=["expenses"]
)

api_router.include_router(
    budgets.router,
    prefix="/budget",
    tags=["budget"]
)

api_router.include_router(
    categories.router,
    prefix="/expense-categories",
    tags=["expense-categories"]
)
