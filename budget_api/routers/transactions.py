# routers/transactions.py
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query

from budget_api.core.summary import apply_food_items_amount, derived_amount, sort_transactions, transaction_totals
from budget_api.deps import get_budgets, get_current_user, get_transactions
from budget_api.repositories import BudgetRepository, TransactionRepository
from budget_api.schemas import TransactionCreate, TransactionUpdate

router = APIRouter(prefix="/budgets/{budget_id}/transactions", tags=["Transactions"])

# ---------- Endpoints ----------
@router.get("")
def list_transactions(
    budget_id: str,
    category: Optional[str] = Query(None, description="Coincidencia exacta de categoría"),
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
    transactions: TransactionRepository = Depends(get_transactions),
):
    budgets.get(budget_id, user["id"])
    if category:
        rows = transactions.list_by_category(budget_id, category)
    else:
        rows = transactions.list(budget_id)
    rows = sort_transactions(rows)
    return {"ok": True, "data": rows, "totals": transaction_totals(rows)}

@router.post("", status_code=201)
def create_transaction(
    budget_id: str,
    body: TransactionCreate,
    user: dict = Depends(get_current_user),
    transactions: TransactionRepository = Depends(get_transactions),
):
    data = apply_food_items_amount(body.model_dump(exclude_none=True))
    tid = transactions.create(budget_id, data, user["id"])
    return {"ok": True, "id": tid}

@router.get("/{transaction_id}")
def get_transaction(
    budget_id: str,
    transaction_id: str,
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
    transactions: TransactionRepository = Depends(get_transactions),
):
    budgets.get(budget_id, user["id"])
    return {"ok": True, "data": transactions.get(budget_id, transaction_id)}

@router.patch("/{transaction_id}")
def update_transaction(
    budget_id: str,
    transaction_id: str,
    body: TransactionUpdate,
    user: dict = Depends(get_current_user),
    budgets: BudgetRepository = Depends(get_budgets),
    transactions: TransactionRepository = Depends(get_transactions),
):
    budgets.get(budget_id, user["id"])
    incoming = body.model_dump(exclude_unset=True, exclude_none=True)
    if "foodItems" in incoming or "category" in incoming:
        # el monto se recalcula con la categoría vigente
        current = transactions.get(budget_id, transaction_id)
        amount = derived_amount({**current, **incoming})
        if amount is not None:
            incoming["amount"] = amount
    transactions.update(budget_id, transaction_id, incoming, user["id"])
    return {"ok": True, "data": transactions.get(budget_id, transaction_id)}

@router.delete("/{transaction_id}")
def delete_transaction(
    budget_id: str,
    transaction_id: str,
    user: dict = Depends(get_current_user),
    transactions: TransactionRepository = Depends(get_transactions),
):
    transactions.delete(budget_id, transaction_id, user["id"])
    return {"ok": True}
