from budget_api.repositories.activity import ActivityLog
from budget_api.repositories.budgets import BudgetRepository
from budget_api.repositories.transactions import TransactionRepository
from budget_api.repositories.users import UserRepository

__all__ = ["ActivityLog", "BudgetRepository", "TransactionRepository", "UserRepository"]
