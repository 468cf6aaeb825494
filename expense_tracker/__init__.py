"""
Expense Tracker - multi-tenant expense tracking backend.
"""

__version__ = "1.0.0"
