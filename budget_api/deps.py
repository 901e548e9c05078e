# budget_api/deps.py
from __future__ import annotations
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from budget_api import config
from budget_api.auth import AuthService
from budget_api.core.errors import AuthError, NotFoundError, PermissionDeniedError
from budget_api.core.store import BaseStore, MemoryStore
from budget_api.repositories import ActivityLog, BudgetRepository, TransactionRepository, UserRepository

_bearer = HTTPBearer(auto_error=False)


@lru_cache(maxsize=1)
def _default_store() -> BaseStore:
    if config.STORE_BACKEND == "sql":
        from budget_api.core.sqlstore import SqlStore
        logging.getLogger("uvicorn.error").info("Usando almacén SQL")
        return SqlStore(config.get_database_url())
    return MemoryStore()

def get_store() -> BaseStore:
    return _default_store()

def get_users(store: BaseStore = Depends(get_store)) -> UserRepository:
    return UserRepository(store)

def get_activity(store: BaseStore = Depends(get_store)) -> ActivityLog:
    return ActivityLog(store)

def get_budgets(
    store: BaseStore = Depends(get_store),
    users: UserRepository = Depends(get_users),
    activity: ActivityLog = Depends(get_activity),
) -> BudgetRepository:
    return BudgetRepository(store, users=users, activity=activity)

def get_transactions(
    store: BaseStore = Depends(get_store),
    activity: ActivityLog = Depends(get_activity),
) -> TransactionRepository:
    return TransactionRepository(store, activity=activity)

def get_auth(store: BaseStore = Depends(get_store), users: UserRepository = Depends(get_users)) -> AuthService:
    return AuthService(store, users=users)

def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    auth: AuthService = Depends(get_auth),
    users: UserRepository = Depends(get_users),
) -> Dict[str, Any]:
    if creds is None:
        raise AuthError("No hay usuario autenticado")
    uid = auth.verify_token(creds.credentials)
    try:
        return users.get(uid)
    except NotFoundError:
        raise AuthError("Usuario desconocido")

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        raise PermissionDeniedError("Solo para administradores")
    return user
