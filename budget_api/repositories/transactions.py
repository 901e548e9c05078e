# repositories/transactions.py
from __future__ import annotations
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from budget_api.core.errors import NotFoundError, PermissionDeniedError, TooOldError, ValidationError
from budget_api.core.store import BaseStore, Subscription
from budget_api.core.timeutils import parse_iso, to_iso, utcnow
from budget_api.core.validation import sanitize_data, validate_field_names, validate_transaction
from budget_api.repositories.activity import ActivityLog
from budget_api.repositories.budgets import can_view

DELETE_WINDOW = timedelta(days=30)

# campos que update() nunca toca
_IMMUTABLE = ("id", "createdAt", "createdBy", "budgetId")


def _created_at(tx: Dict[str, Any]) -> Optional[datetime]:
    """None when the record has no usable ``createdAt``; its age is then unknown."""
    try:
        return parse_iso(tx["createdAt"])
    except (KeyError, TypeError, ValueError, AttributeError):
        return None


class TransactionRepository:
    def __init__(
        self,
        store: BaseStore,
        activity: Optional[ActivityLog] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.activity = activity or ActivityLog(store, now=now)
        self.now = now

    def _budget(self, budget_id: str) -> Dict[str, Any]:
        budget = self.store.get(f"budgets/{budget_id}")
        if not budget:
            raise NotFoundError("Presupuesto no encontrado")
        return budget

    @staticmethod
    def _with_ids(budget_id: str, transactions: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        # budgetId only lives in the path, so put it back on the way out
        return [
            {**tx, "id": tid, "budgetId": budget_id}
            for tid, tx in (transactions or {}).items()
        ]

    # ------------------------------- create ------------------------------
    def create(self, budget_id: str, data: Dict[str, Any], user_id: Optional[str] = None) -> str:
        user_id = user_id or data.get("userId")
        budget = self._budget(budget_id)
        if not user_id or not can_view(budget, user_id):
            raise PermissionDeniedError("No tienes permiso para agregar transacciones a este presupuesto")

        is_valid, errors = validate_transaction(data)
        if not is_valid:
            raise ValidationError(errors)

        clean = sanitize_data({k: v for k, v in data.items() if k not in ("userId", *_IMMUTABLE)})
        transaction_id = self.store.new_key()
        self.store.set(f"transactions/{budget_id}/{transaction_id}", {
            **clean,
            "id": transaction_id,
            "createdAt": to_iso(self.now()),
            "createdBy": user_id,
        })

        self.activity.record(
            user_id, "createtransaction",
            transactionId=transaction_id,
            budgetId=budget_id,
            type=clean.get("type"),
            amount=clean.get("amount"),
        )
        return transaction_id

    # ------------------------------- read --------------------------------
    def list(self, budget_id: str) -> List[Dict[str, Any]]:
        """Every transaction of the budget, in no particular order."""
        return self._with_ids(budget_id, self.store.get(f"transactions/{budget_id}"))

    def get(self, budget_id: str, transaction_id: str) -> Dict[str, Any]:
        tx = self.store.get(f"transactions/{budget_id}/{transaction_id}")
        if not tx:
            raise NotFoundError("Transacción no encontrada")
        return {**tx, "id": transaction_id, "budgetId": budget_id}

    def list_by_category(self, budget_id: str, category: str) -> List[Dict[str, Any]]:
        return self._with_ids(
            budget_id, self.store.query(f"transactions/{budget_id}", "category", category))

    def subscribe(
        self, budget_id: str, callback: Callable[[List[Dict[str, Any]]], None],
    ) -> Subscription:
        return self.store.subscribe(
            f"transactions/{budget_id}",
            lambda value: callback(self._with_ids(budget_id, value)),
        )

    # ------------------------------- update ------------------------------
    def update(self, budget_id: str, transaction_id: str, data: Dict[str, Any], user_id: str) -> None:
        budget = self._budget(budget_id)
        if not can_view(budget, user_id):
            raise PermissionDeniedError("No tienes permiso para editar esta transacción")
        current = self.get(budget_id, transaction_id)

        is_valid, errors = validate_field_names(data)
        if not is_valid:
            raise ValidationError(errors)
        changes = {k: v for k, v in data.items() if k not in _IMMUTABLE}
        # cambiar la categoría vuelve a exigir items válidos
        checked = set(changes) | ({"foodItems"} if "category" in changes else set())
        _, errors = validate_transaction({**current, **changes})
        errors = {k: msg for k, msg in errors.items() if k in checked}
        if errors:
            raise ValidationError(errors)

        fields = sanitize_data(changes)
        fields["updatedAt"] = to_iso(self.now())
        base = f"transactions/{budget_id}/{transaction_id}"
        self.store.update({f"{base}/{k}": v for k, v in fields.items()})

    # ------------------------------- delete ------------------------------
    def delete(self, budget_id: str, transaction_id: str, user_id: str) -> None:
        tx = self.get(budget_id, transaction_id)
        if tx.get("createdBy") != user_id:
            raise PermissionDeniedError("No tienes permiso para eliminar esta transacción")

        created = _created_at(tx)
        if created is not None and self.now() - created > DELETE_WINDOW:
            raise TooOldError("No se pueden eliminar transacciones con más de 30 días de antigüedad")

        self.store.remove(f"transactions/{budget_id}/{transaction_id}")
        self.activity.record(
            user_id, "deletetransaction", transactionId=transaction_id, budgetId=budget_id,
        )
