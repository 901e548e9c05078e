# core/summary.py
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Optional

from budget_api.core.validation import FOOD_CATEGORY


def _to_float(x) -> float:
    try:
        return float(x or 0)
    except (TypeError, ValueError):
        return 0.0

# ------------------------------ Food items -------------------------------
def food_items_totals(items: Optional[Iterable[Dict[str, Any]]]) -> Dict[str, float]:
    """Unpaid and paid subtotals (quantity x price) of a grocery list."""
    unpaid = paid = 0.0
    for item in items or []:
        line = _to_float(item.get("quantity")) * _to_float(item.get("price"))
        if item.get("isPaid"):
            paid += line
        else:
            unpaid += line
    return {"unpaid": round(unpaid, 2), "paid": round(paid, 2)}

def derived_amount(data: Dict[str, Any]) -> Optional[float]:
    """
    Grocery expenses with an item list carry the unpaid subtotal as their
    amount; paid items stay in the list but no longer count. None when the
    rule does not apply.
    """
    items = data.get("foodItems")
    if data.get("category") == FOOD_CATEGORY and isinstance(items, list) and items:
        return food_items_totals(items)["unpaid"]
    return None

def apply_food_items_amount(data: Dict[str, Any]) -> Dict[str, Any]:
    amount = derived_amount(data)
    return data if amount is None else {**data, "amount": amount}

# ------------------------------- Totals ----------------------------------
def transaction_totals(transactions: Iterable[Dict[str, Any]]) -> Dict[str, float]:
    income = expenses = 0.0
    for tx in transactions:
        amount = _to_float(tx.get("amount"))
        if tx.get("type") == "income":
            income += amount
        elif tx.get("type") == "expense":
            expenses += amount
    return {
        "income": round(income, 2),
        "expenses": round(expenses, 2),
        "balance": round(income - expenses, 2),
    }

def dashboard_summary(
    budgets: List[Dict[str, Any]],
    transactions_by_budget: Mapping[str, List[Dict[str, Any]]],
) -> Dict[str, Any]:
    per_budget = []
    income = expenses = 0.0
    for b in budgets:
        totals = transaction_totals(transactions_by_budget.get(b["id"], []))
        income += totals["income"]
        expenses += totals["expenses"]
        per_budget.append({"id": b["id"], "name": b.get("name"), **totals})
    return {
        "income": round(income, 2),
        "expenses": round(expenses, 2),
        "balance": round(income - expenses, 2),
        "budgets": per_budget,
    }

def sort_transactions(transactions: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Newest first, by ``date`` and then ``createdAt``."""
    return sorted(
        transactions,
        key=lambda tx: (tx.get("date") or "", tx.get("createdAt") or ""),
        reverse=True,
    )
