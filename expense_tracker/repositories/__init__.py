from expense_tracker.repositories.accounts import AccountStore

__all__ = ["AccountStore"]
