# core/errors.py
from __future__ import annotations
from typing import Dict, Optional


class BudgetAppError(Exception):
    """Base for every error the repositories raise on purpose."""

    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(BudgetAppError):
    status_code = 422

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        super().__init__(message or f"Datos inválidos: {errors}")
        self.errors = dict(errors)


class NotFoundError(BudgetAppError):
    status_code = 404


class PermissionDeniedError(BudgetAppError):
    status_code = 403


class SelfShareError(BudgetAppError):
    status_code = 400

    def __init__(self, message: str = "No puedes compartir un presupuesto contigo mismo"):
        super().__init__(message)


class TooOldError(BudgetAppError):
    status_code = 409


class ConflictError(BudgetAppError):
    status_code = 409


class AuthError(BudgetAppError):
    status_code = 401


class TooManyAttemptsError(BudgetAppError):
    status_code = 429


class StoreError(BudgetAppError):
    """The underlying store rejected a call (backend down, rule rejection, quota)."""

    status_code = 503
