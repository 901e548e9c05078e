# repositories/budgets.py
"""
Budgets live at ``budgets/{id}``; every user who can see one also gets a
pointer at ``userBudgets/{uid}/{id}``. The two are written one after the
other with no transaction tying them together, so readers never trust the
index alone (see ``list_for_user``) and ``share_with`` repairs a missing
pointer when it finds one.
"""
from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from budget_api.core.errors import (
    NotFoundError, PermissionDeniedError, SelfShareError, StoreError, ValidationError,
)
from budget_api.core.store import BaseStore, Subscription
from budget_api.core.timeutils import to_iso, utcnow
from budget_api.core.validation import sanitize_data, validate_budget, validate_field_names
from budget_api.repositories.activity import ActivityLog
from budget_api.repositories.users import UserRepository

# campos que update() nunca toca
_IMMUTABLE = ("id", "ownerId", "createdAt", "createdBy", "sharedWith")


def can_view(budget: Dict[str, Any], user_id: str) -> bool:
    return budget.get("ownerId") == user_id or bool((budget.get("sharedWith") or {}).get(user_id))

def can_delete(budget: Dict[str, Any], user_id: str) -> bool:
    # createdBy: budgets written by older clients
    return budget.get("ownerId") == user_id or budget.get("createdBy") == user_id


class BudgetRepository:
    def __init__(
        self,
        store: BaseStore,
        users: Optional[UserRepository] = None,
        activity: Optional[ActivityLog] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.users = users or UserRepository(store)
        self.activity = activity or ActivityLog(store, now=now)
        self.now = now

    # ------------------------------ helpers ------------------------------
    def _load(self, budget_id: str) -> Dict[str, Any]:
        budget = self.store.get(f"budgets/{budget_id}")
        if not budget:
            raise NotFoundError("Presupuesto no encontrado")
        return {**budget, "id": budget_id}

    def _resolve(self, budget_ids) -> List[Dict[str, Any]]:
        """Fetch each id, dropping pointers whose budget is gone."""
        found = []
        for bid in budget_ids:
            budget = self.store.get(f"budgets/{bid}")
            if budget:
                found.append({**budget, "id": bid})
        return found

    def _query(self, child: str, value: Any) -> List[Dict[str, Any]]:
        return [{**b, "id": bid} for bid, b in self.store.query("budgets", child, value).items()]

    # ------------------------------- create ------------------------------
    def create(self, user_id: str, data: Dict[str, Any]) -> str:
        is_valid, errors = validate_budget(data)
        if not is_valid:
            raise ValidationError(errors)

        clean = sanitize_data(data)
        budget_id = self.store.new_key()
        today = self.now()
        shared_with = {uid: True for uid, on in (clean.get("sharedWith") or {}).items() if on}

        record = {
            **clean,
            "id": budget_id,
            "ownerId": user_id,
            "month": clean["month"] if clean.get("month") is not None else today.month - 1,
            "year": clean["year"] if clean.get("year") is not None else today.year,
            "isMonthly": clean["isMonthly"] if clean.get("isMonthly") is not None else True,
            "sharedWith": shared_with,
            "createdAt": to_iso(today),
        }
        record.pop("createdBy", None)
        self.store.set(f"budgets/{budget_id}", record)
        self.store.set(f"userBudgets/{user_id}/{budget_id}", True)

        # best effort: a failure here leaves the share without its pointer
        for uid in shared_with:
            self.store.set(f"userBudgets/{uid}/{budget_id}", True)

        return budget_id

    # ------------------------------- read --------------------------------
    def get(self, budget_id: str, user_id: str) -> Dict[str, Any]:
        budget = self._load(budget_id)
        if not can_view(budget, user_id):
            raise PermissionDeniedError("No tienes acceso a este presupuesto")
        return budget

    def list_for_user(
        self, user_id: str, month: Optional[int] = None, year: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Union of three lookups, deduplicated by id: the user's index, budgets
        they own, and budgets shared with them. A lookup the store refuses is
        skipped; only when all three fail does the error reach the caller.
        """
        lookups = [
            ("index", lambda: self._resolve((self.store.get(f"userBudgets/{user_id}") or {}).keys())),
            ("owner", lambda: self._query("ownerId", user_id)),
            ("shared", lambda: self._query(f"sharedWith/{user_id}", True)),
        ]
        found: Dict[str, Dict[str, Any]] = {}
        failures: List[StoreError] = []
        for label, fetch in lookups:
            try:
                budgets = fetch()
            except StoreError as e:
                logging.getLogger("uvicorn.error").warning(
                    "Búsqueda %r de presupuestos para %s omitida: %s", label, user_id, e)
                failures.append(e)
                continue
            for b in budgets:
                found.setdefault(b["id"], b)
        if len(failures) == len(lookups):
            raise failures[-1]

        result = list(found.values())
        if month is not None and year is not None:
            result = [b for b in result if b.get("month") == month and b.get("year") == year]
        return result

    def subscribe_for_user(
        self, user_id: str, callback: Callable[[List[Dict[str, Any]]], None],
    ) -> Subscription:
        """
        Calls ``callback`` with the user's full budget list now and after each
        change to their index. Keeps firing until the returned handle is
        cancelled.
        """
        def on_change(index: Optional[Dict[str, Any]]) -> None:
            if index:
                callback(self._resolve(index.keys()))
            else:
                callback(self._query("ownerId", user_id))

        return self.store.subscribe(f"userBudgets/{user_id}", on_change)

    # ------------------------------- update ------------------------------
    def update(self, budget_id: str, data: Dict[str, Any], user_id: str) -> None:
        budget = self._load(budget_id)
        if not can_view(budget, user_id):
            raise PermissionDeniedError("No tienes permiso para editar este presupuesto")

        is_valid, errors = validate_field_names(data)
        if not is_valid:
            raise ValidationError(errors)
        changes = {k: v for k, v in data.items() if k not in _IMMUTABLE}
        if not changes:
            return
        # solo se reportan los campos que llegan en el cambio
        _, errors = validate_budget({**budget, **changes})
        errors = {k: msg for k, msg in errors.items() if k in changes}
        if errors:
            raise ValidationError(errors)

        fields = sanitize_data(changes)
        self.store.update({f"budgets/{budget_id}/{k}": v for k, v in fields.items()})

    # ------------------------------- share -------------------------------
    def share_with(self, budget_id: str, user_email: str, current_user_id: str) -> bool:
        """
        Give the user behind ``user_email`` access to the budget. Returns
        ``True`` when newly shared and ``False`` when it already was (after
        making sure their index pointer exists).
        """
        target = self.users.find_by_email(user_email)
        if not target:
            raise NotFoundError("Usuario no encontrado")

        budget = self._load(budget_id)
        if not can_view(budget, current_user_id):
            raise PermissionDeniedError("No tienes permiso para compartir este presupuesto")
        target_id = target["id"]
        if target_id == current_user_id:
            raise SelfShareError()

        pointer = f"userBudgets/{target_id}/{budget_id}"
        if (budget.get("sharedWith") or {}).get(target_id):
            if not self.store.get(pointer):
                logging.getLogger("uvicorn.error").info(
                    "Reparando puntero de índice faltante %s", pointer)
                self.store.set(pointer, True)
            return False

        member = f"budgets/{budget_id}/sharedWith/{target_id}"
        try:
            self.store.update({member: True, pointer: True})
        except StoreError as e:
            logging.getLogger("uvicorn.error").warning(
                "Compartir atómico de %s rechazado (%s); escribiendo rutas una por una", budget_id, e)
            try:
                self.store.set(member, True)
            except StoreError as e2:
                raise StoreError(f"No se pudo agregar el usuario al presupuesto: {e2.message}") from e2
            try:
                self.store.set(pointer, True)
            except StoreError as e3:
                raise StoreError(
                    f"Presupuesto compartido, pero no se pudo actualizar la lista de presupuestos del usuario: {e3.message}"
                ) from e3

        self.activity.record(
            current_user_id, "sharebudget", budgetId=budget_id, sharedWith=target_id,
        )
        logging.getLogger("uvicorn.error").info(
            "Presupuesto %s compartido con %s por %s", budget_id, target_id, current_user_id)
        return True

    # ------------------------------- delete ------------------------------
    def delete(self, budget_id: str, user_id: str) -> None:
        budget = self._load(budget_id)
        if not can_delete(budget, user_id):
            raise PermissionDeniedError("No tienes permiso para eliminar este presupuesto")

        members = set((budget.get("sharedWith") or {}).keys())
        members.add(budget.get("ownerId") or user_id)
        members.add(user_id)
        for uid in sorted(members):
            self.store.remove(f"userBudgets/{uid}/{budget_id}")
        self.store.remove(f"transactions/{budget_id}")
        self.store.remove(f"budgets/{budget_id}")
        logging.getLogger("uvicorn.error").info(
            "Presupuesto %s eliminado por %s (%d punteros de índice)", budget_id, user_id, len(members))
